from __future__ import annotations

import logging

import httpx

from .config import Config
from .jobs import PushNewNoticesJob
from .notifiers.base import BaseMessenger
from .notifiers.telegram import TelegramMessenger, TelegramSettings
from .rendering.notice import NoticeRenderer, RenderSettings
from .sources.fibapi import FIBAPIClient, FIBAPISettings
from .sources.subjects import SubjectDirectory, SubjectDirectorySettings
from .state import Subscriber, SubscriberStore


class NoticeBot:
    """Owns the shared HTTP connection pool and wires the push pipeline together.

    Every upstream call and message send goes through one ``httpx.AsyncClient``
    opened by ``start()`` and closed by ``stop()``.
    """

    def __init__(self, config: Config, store: SubscriberStore | None = None) -> None:
        self._config = config
        self._logger = logging.getLogger(__name__)
        self.store = store or SubscriberStore(config.settings.state_file)
        self.renderer = NoticeRenderer(RenderSettings(mailto_redirect_url=config.settings.mailto_redirect_url))
        self._http: httpx.AsyncClient | None = None
        self._messenger: BaseMessenger | None = None
        self._subjects: SubjectDirectory | None = None

    async def start(self) -> None:
        if self._http is not None:
            return
        settings = self._config.settings
        self._http = httpx.AsyncClient(
            timeout=settings.client_timeout_seconds,
            headers={"User-Agent": settings.user_agent},
        )
        self._messenger = TelegramMessenger(
            self._http,
            TelegramSettings(
                token=self._config.telegram.token,
                api_base_url=self._config.telegram.api_base_url,
                timeout_seconds=settings.request_timeout_seconds,
                user_agent=settings.user_agent,
            ),
        )
        self._subjects = SubjectDirectory(
            self._http,
            self.store,
            SubjectDirectorySettings(
                client_id=self._config.fib_api.client_id,
                timeout_seconds=settings.request_timeout_seconds,
                user_agent=settings.user_agent,
            ),
        )
        self._logger.info("Bot started")

    async def stop(self) -> None:
        if self._http is None:
            return
        await self._http.aclose()
        self._http = None
        self._messenger = None
        self._subjects = None
        self._logger.info("Bot stopped")

    @property
    def messenger(self) -> BaseMessenger:
        if self._messenger is None:
            raise RuntimeError("NoticeBot.start() must be awaited first")
        return self._messenger

    @property
    def subjects(self) -> SubjectDirectory:
        if self._subjects is None:
            raise RuntimeError("NoticeBot.start() must be awaited first")
        return self._subjects

    def client_for(self, subscriber: Subscriber) -> FIBAPIClient | None:
        """Build a notice source for ``subscriber``, or None when credentials are missing."""
        if self._http is None:
            raise RuntimeError("NoticeBot.start() must be awaited first")
        if not subscriber.has_credentials:
            return None
        return FIBAPIClient(
            self._http,
            FIBAPISettings(
                access_token=subscriber.access_token,
                timeout_seconds=self._config.settings.request_timeout_seconds,
                user_agent=self._config.settings.user_agent,
            ),
        )

    def push_new_notices_job(self) -> PushNewNoticesJob:
        return PushNewNoticesJob(
            store=self.store,
            client_for=self.client_for,
            messenger=self.messenger,
            renderer=self.renderer,
            link_url=self.subjects.link_url,
            clock_skew_seconds=self._config.jobs.clock_skew_seconds,
        )
