from __future__ import annotations

# Plan:
# 1) Load every subscriber ID, then hold the first fetch until a few seconds
#    past the minute so a notice published "now" upstream is not missed.
# 2) Serially per subscriber: fetch + digest, diff against the cursor, render and
#    deliver in publish order, and write the cursor last.
# 3) Contain every per-subscriber failure; log run counters at the end.

import asyncio
from dataclasses import dataclass
from datetime import datetime
import logging
import time
from typing import Awaitable, Callable, Optional

from .changes import diff_notices, has_changed
from .errors import AuthorizationExpired, SourceUnavailable, StoreFailure
from .locales import get_locale
from .notifiers.base import BaseMessenger
from .notifiers.message import ErrorMessage, Message, NoticeMessage
from .rendering.notice import NoticeRenderer
from .sources.base import BaseNoticeSource, Notice
from .state import Subscriber, SubscriberStore


logger = logging.getLogger(__name__)

ClientFactory = Callable[[Subscriber], Optional[BaseNoticeSource]]
LinkResolver = Callable[[Notice], Awaitable[str]]


@dataclass
class RunStats:
    checked: int = 0
    total: int = 0
    sent: int = 0
    fetched: int = 0
    elapsed: float = 0.0


class PushNewNoticesJob:
    def __init__(
        self,
        store: SubscriberStore,
        client_for: ClientFactory,
        messenger: BaseMessenger,
        renderer: NoticeRenderer,
        link_url: LinkResolver,
        clock_skew_seconds: int = 5,
    ) -> None:
        self._store = store
        self._client_for = client_for
        self._messenger = messenger
        self._renderer = renderer
        self._link_url = link_url
        self._clock_skew_seconds = clock_skew_seconds

    async def run(self) -> RunStats:
        stats = RunStats()
        try:
            await self._run(stats)
        except Exception:
            logger.exception("PushNewNotices run aborted")
        return stats

    async def _run(self, stats: RunStats) -> None:
        try:
            subscriber_ids = self._store.all_ids()
        except StoreFailure as exc:
            logger.error("Failed to get all subscriber IDs: %s", exc)
            return
        stats.total = len(subscriber_ids)

        await wait_until_second(self._clock_skew_seconds)

        start = time.monotonic()
        for subscriber_id in subscriber_ids:
            try:
                await self._push_to_subscriber(subscriber_id, stats)
            except Exception:
                logger.exception("uid=%s: unexpected error while pushing notices", subscriber_id)
        stats.elapsed = time.monotonic() - start

        logger.info(
            "push run: checked=%d total=%d sent=%d fetched=%d elapsed=%.2fs",
            stats.checked,
            stats.total,
            stats.sent,
            stats.fetched,
            stats.elapsed,
        )

    async def _push_to_subscriber(self, subscriber_id: int, stats: RunStats) -> None:
        try:
            subscriber = self._store.get(subscriber_id)
        except StoreFailure as exc:
            logger.error("uid=%s: failed to load subscriber: %s", subscriber_id, exc)
            return
        if subscriber is None:
            return

        client = self._client_for(subscriber)
        if client is None:
            # possibly corrupted credentials, ask for a fresh login
            logger.error("uid=%s: failed to create client", subscriber_id)
            await self._send(subscriber_id, ErrorMessage(get_locale(None).authorization_expired_message))
            self._delete(subscriber_id)
            return

        try:
            fetch = await client.fetch_notices()
        except AuthorizationExpired:
            logger.info("uid=%s: authorization has expired", subscriber_id)
            locale = get_locale(subscriber.language_code)
            if await self._send(subscriber_id, ErrorMessage(locale.authorization_expired_message)):
                self._delete(subscriber_id)
            return
        except SourceUnavailable as exc:
            logger.error("uid=%s: failed to get notices: %s", subscriber_id, exc)
            return
        stats.checked += 1

        if not has_changed(fetch, subscriber):
            return

        diff = diff_notices(fetch.notices, subscriber.last_notice_timestamp)
        stats.fetched += len(diff.new_notices)
        sent = 0
        for notice in diff.new_notices:
            link_url = await self._link_url(notice)
            message = NoticeMessage(
                notice=notice,
                text=self._renderer.render(notice, subscriber.language_code, link_url),
                silent=notice.is_banner and subscriber.mute_banner_notices,
            )
            if await self._send(subscriber_id, message):
                sent += 1
        stats.sent += sent
        if diff.new_notices:
            logger.info("uid=%s: sent %d/%d new notices", subscriber_id, sent, len(diff.new_notices))

        subscriber.last_notices_digest = fetch.digest
        subscriber.last_notice_timestamp = diff.max_timestamp
        try:
            self._store.put(subscriber)
        except StoreFailure as exc:
            logger.error("uid=%s: failed to save cursor: %s", subscriber_id, exc)

    async def _send(self, subscriber_id: int, message: Message) -> bool:
        try:
            return await self._messenger.send(subscriber_id, message)
        except Exception as exc:
            logger.error("uid=%s: failed to send message: %s", subscriber_id, exc)
            return False

    def _delete(self, subscriber_id: int) -> None:
        try:
            self._store.delete(subscriber_id)
        except StoreFailure as exc:
            logger.error("uid=%s: failed to delete subscriber: %s", subscriber_id, exc)


async def wait_until_second(second: int, now: datetime | None = None) -> None:
    """Sleep until the wall clock is at least ``second`` seconds into the minute.

    Upstream clocks may lag; fetching right at the top of the minute could miss a
    notice that the advanced cursor would then treat as already seen.
    """
    current = (now or datetime.now()).second
    if current < second:
        await asyncio.sleep(second - current)
