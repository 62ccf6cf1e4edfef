from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import json
import logging
from typing import Any
from urllib.parse import quote_plus
import zlib

import httpx

from .base import INSTITUTION_TZ, Attachment, BaseNoticeSource, Notice, NoticeFetch
from ..errors import AuthorizationExpired, SourceUnavailable


# `.json` suffix selects the JSON representation without an Accept header
NOTICES_URL = "https://api.fib.upc.edu/v2/jo/avisos.json"
LOGIN_REDIRECT_BASE_URL = "https://api.fib.upc.edu/v2/accounts/login/?next="
RACO_BASE_URL = "https://raco.fib.upc.edu"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass
class FIBAPISettings:
    access_token: str
    timeout_seconds: float
    user_agent: str


class FIBAPIClient(BaseNoticeSource):
    def __init__(self, http: httpx.AsyncClient, settings: FIBAPISettings) -> None:
        self._http = http
        self._settings = settings
        self._logger = logging.getLogger(__name__)

    async def fetch_notices(self) -> NoticeFetch:
        body = await self._get(NOTICES_URL)
        try:
            payload = json.loads(body)
            notices = _parse_notices(payload)
        except (ValueError, KeyError, TypeError) as exc:
            raise SourceUnavailable(f"malformed notices response: {exc}") from exc
        return NoticeFetch(notices=notices, digest=compute_digest(body))

    async def _get(self, url: str) -> bytes:
        headers = {
            "Authorization": f"Bearer {self._settings.access_token}",
            "User-Agent": self._settings.user_agent,
        }
        try:
            response = await self._http.get(url, headers=headers, timeout=self._settings.timeout_seconds)
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"request to {url} failed: {exc}") from exc

        if response.status_code in (400, 401):
            raise AuthorizationExpired("FIB API authorization has expired")
        if response.status_code != 200:
            raise SourceUnavailable(f"FIB API responded with status {response.status_code}")
        return response.content


def compute_digest(body: bytes) -> str:
    return f"{zlib.crc32(body) & 0xFFFFFFFF:08x}"


def parse_notice(raw: dict[str, Any]) -> Notice:
    attachments = tuple(_parse_attachment(item) for item in raw.get("adjunts") or [])
    return Notice(
        id=int(raw["id"]),
        subject_code=str(raw.get("codi_assig", "")),
        title=str(raw.get("titol", "")),
        text=str(raw.get("text") or ""),
        created_at=_parse_timestamp(raw["data_insercio"]),
        modified_at=_parse_timestamp(raw["data_modificacio"]),
        expires_at=_parse_timestamp(raw["data_caducitat"]),
        attachments=attachments,
    )


def _parse_notices(payload: Any) -> list[Notice]:
    if not isinstance(payload, dict):
        raise ValueError("notices response root must be an object")
    results = payload.get("results") or []
    if not isinstance(results, list):
        raise ValueError("notices response results must be a list")
    return [parse_notice(item) for item in results]


def _parse_attachment(raw: dict[str, Any]) -> Attachment:
    url = str(raw["url"])
    return Attachment(
        name=str(raw.get("nom", "")),
        url=url,
        mime_type=str(raw.get("tipus_mime", "")),
        size=int(raw.get("mida", 0)),
        modified_at=_parse_timestamp(raw["data_modificacio"]),
        # the raw URL needs session cookies that expire, the login redirect does not
        redirect_url=LOGIN_REDIRECT_BASE_URL + quote_plus(url, safe=""),
    )


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=INSTITUTION_TZ)
