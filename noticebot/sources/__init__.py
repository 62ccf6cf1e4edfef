from .base import Attachment, BaseNoticeSource, Notice, NoticeFetch
from .fibapi import FIBAPIClient, FIBAPISettings, parse_notice

__all__ = [
    "Attachment",
    "BaseNoticeSource",
    "FIBAPIClient",
    "FIBAPISettings",
    "Notice",
    "NoticeFetch",
    "parse_notice",
]
