from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..sources.base import Notice


@dataclass(frozen=True)
class SendOptions:
    silent: bool = False
    disable_preview: bool = True
    pin: bool = False


@dataclass(frozen=True)
class NoticeMessage:
    notice: Notice
    text: str
    silent: bool = False

    def render(self) -> str:
        return self.text

    def send_options(self) -> SendOptions:
        return SendOptions(silent=self.silent)


@dataclass(frozen=True)
class ErrorMessage:
    text: str

    def render(self) -> str:
        return self.text

    def send_options(self) -> SendOptions:
        return SendOptions()


@dataclass(frozen=True)
class AnnouncementMessage:
    text: str

    def render(self) -> str:
        return self.text

    def send_options(self) -> SendOptions:
        return SendOptions(disable_preview=False, pin=True)


Message = Union[NoticeMessage, ErrorMessage, AnnouncementMessage]
