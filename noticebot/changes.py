from __future__ import annotations

from dataclasses import dataclass

from .sources.base import Notice, NoticeFetch
from .state import Subscriber


@dataclass(frozen=True)
class NoticeDiff:
    new_notices: list[Notice]
    max_timestamp: int


def has_changed(fetch: NoticeFetch, subscriber: Subscriber) -> bool:
    """The upstream list has no change feed; a whole-response digest stands in for one."""
    return fetch.digest != subscriber.last_notices_digest


def diff_notices(notices: list[Notice], last_timestamp: int) -> NoticeDiff:
    """Select the notices published after ``last_timestamp``, in delivery order.

    A zero ``last_timestamp`` marks a subscriber that has never been checked: no
    backlog is delivered, the run only establishes the baseline timestamp.
    """
    max_timestamp = last_timestamp
    for notice in notices:
        max_timestamp = max(max_timestamp, notice.published_timestamp)

    if last_timestamp == 0:
        return NoticeDiff(new_notices=[], max_timestamp=max_timestamp)

    new_notices = sorted(
        (notice for notice in notices if notice.published_timestamp > last_timestamp),
        key=_delivery_order,
    )
    return NoticeDiff(new_notices=new_notices, max_timestamp=max_timestamp)


def _delivery_order(notice: Notice) -> tuple[int, str, str]:
    # ties resolve the way the Racó web UI lists them
    return (notice.published_timestamp, notice.subject_code, notice.title)
