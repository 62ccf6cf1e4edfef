from __future__ import annotations

from dataclasses import dataclass
import logging

import httpx

from .base import Notice
from .fibapi import RACO_BASE_URL
from ..errors import StoreFailure
from ..state import SubscriberStore


PUBLIC_SUBJECT_URL_TEMPLATE = "https://api.fib.upc.edu/v2/assignatures/{acronym}.json"
NOTICE_URL_TEMPLATE = RACO_BASE_URL + "/avisos/veure.jsp?espai={code}&id={notice_id}"
BANNER_NOTICE_URL_TEMPLATE = RACO_BASE_URL + "/#avis-{notice_id}"


@dataclass
class SubjectDirectorySettings:
    client_id: str
    timeout_seconds: float
    user_agent: str


class SubjectDirectory:
    """Resolves the Racó page URL of a notice.

    Subject notices are addressed by the subject's UPC code, which the notices
    endpoint does not include; codes are looked up on the public API once and
    cached in the subscriber store.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: SubscriberStore,
        settings: SubjectDirectorySettings,
    ) -> None:
        self._http = http
        self._store = store
        self._settings = settings
        self._logger = logging.getLogger(__name__)

    async def link_url(self, notice: Notice) -> str:
        if notice.is_banner:
            return notice_link_url(notice)
        code = await self.subject_code(notice.subject_code)
        return notice_link_url(notice, code)

    async def subject_code(self, acronym: str) -> int | None:
        try:
            cached = self._store.get_subject_code(acronym)
        except StoreFailure as exc:
            self._logger.error("Failed to read cached code of subject %s: %s", acronym, exc)
            cached = None
        if cached is not None:
            return cached

        code = await self._fetch_code(acronym)
        if code is None:
            return None
        try:
            self._store.put_subject_code(acronym, code)
        except StoreFailure as exc:
            self._logger.error("Failed to cache code %s of subject %s: %s", code, acronym, exc)
        return code

    async def _fetch_code(self, acronym: str) -> int | None:
        url = PUBLIC_SUBJECT_URL_TEMPLATE.format(acronym=acronym)
        headers = {"client_id": self._settings.client_id, "User-Agent": self._settings.user_agent}
        try:
            response = await self._http.get(url, headers=headers, timeout=self._settings.timeout_seconds)
            response.raise_for_status()
            return int(response.json()["codi_upc"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            self._logger.error("Failed to get UPC code of subject %s: %s", acronym, exc)
            return None


def notice_link_url(notice: Notice, subject_code: int | None = None) -> str:
    if notice.is_banner:
        # banner notices are not viewable on /avisos/veure.jsp
        return BANNER_NOTICE_URL_TEMPLATE.format(notice_id=notice.id)
    if subject_code is None:
        return RACO_BASE_URL
    return NOTICE_URL_TEMPLATE.format(code=subject_code, notice_id=notice.id)
