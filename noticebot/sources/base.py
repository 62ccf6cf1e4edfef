from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo


INSTITUTION_TZ = ZoneInfo("Europe/Madrid")


@dataclass(frozen=True)
class Attachment:
    name: str
    url: str
    mime_type: str
    size: int
    modified_at: datetime
    redirect_url: str


@dataclass(frozen=True)
class Notice:
    id: int
    subject_code: str
    title: str
    text: str
    created_at: datetime
    modified_at: datetime
    expires_at: datetime
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)

    @property
    def published_at(self) -> datetime:
        return max(self.created_at, self.modified_at)

    @property
    def published_timestamp(self) -> int:
        return int(self.published_at.timestamp())

    @property
    def is_banner(self) -> bool:
        return self.subject_code.startswith("#")


@dataclass(frozen=True)
class NoticeFetch:
    notices: list[Notice]
    digest: str


class BaseNoticeSource(ABC):
    @abstractmethod
    async def fetch_notices(self) -> NoticeFetch:
        """Fetch the subscriber's full notice list and a digest of the raw response.

        Raises AuthorizationExpired when the credentials are no longer accepted and
        SourceUnavailable for every other failure.
        """
        raise NotImplementedError
