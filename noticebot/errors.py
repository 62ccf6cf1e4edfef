from __future__ import annotations


class NoticeBotError(Exception):
    """Base class for errors raised by noticebot."""


class SourceUnavailable(NoticeBotError):
    """The notice source could not be reached or returned an unusable response."""


class AuthorizationExpired(SourceUnavailable):
    """The subscriber's API authorization was revoked or has expired."""


class RenderFailure(NoticeBotError):
    """A notice body could not be rewritten into the target markup."""


class StoreFailure(NoticeBotError):
    """The subscriber store could not be read or written."""
