from __future__ import annotations

from dataclasses import dataclass
import asyncio
import logging
import time
from typing import Any

import httpx

from .base import BaseMessenger
from .message import Message, SendOptions


@dataclass
class TelegramSettings:
    token: str
    api_base_url: str
    timeout_seconds: float
    user_agent: str
    min_interval_seconds: float = 0.05


class TelegramMessenger(BaseMessenger):
    def __init__(self, http: httpx.AsyncClient, settings: TelegramSettings) -> None:
        self._http = http
        self._settings = settings
        self._logger = logging.getLogger(__name__)
        self._last_sent_at = 0.0

    async def send(self, chat_id: int, message: Message) -> bool:
        options = message.send_options()
        result = await self.send_text(chat_id, message.render(), options)
        if result is None:
            return False
        if options.pin:
            message_id = result.get("message_id") if isinstance(result, dict) else None
            try:
                pinned = await self._call(
                    "pinChatMessage",
                    {"chat_id": chat_id, "message_id": message_id, "disable_notification": True},
                )
            except httpx.HTTPError as exc:
                self._logger.error("Failed to pin message in chat %s: %s", chat_id, exc)
                return True
            if pinned is None:
                self._logger.error("Failed to pin message in chat %s", chat_id)
        # delivered even when pinning fails
        return True

    async def send_text(self, chat_id: int, text: str, options: SendOptions) -> dict[str, Any] | None:
        await self._throttle()
        return await self._call("sendMessage", _build_payload(chat_id, text, options))

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        url = f"{self._settings.api_base_url.rstrip('/')}/bot{self._settings.token}/{method}"
        headers = {"User-Agent": self._settings.user_agent}
        for attempt in range(3):
            response = await self._http.post(
                url, json=payload, headers=headers, timeout=self._settings.timeout_seconds
            )
            if response.status_code == 429:
                retry_after = _retry_after(response)
                self._logger.warning("Telegram rate limit hit, sleeping %.2fs", retry_after)
                await asyncio.sleep(retry_after)
                continue
            if 200 <= response.status_code < 300:
                return _result(response)
            self._logger.error(
                "Telegram %s failed with status %s: %s", method, response.status_code, _description(response)
            )
            return None
        return None

    async def _throttle(self) -> None:
        min_interval = self._settings.min_interval_seconds
        now = time.monotonic()
        elapsed = now - self._last_sent_at
        if elapsed < min_interval:
            await asyncio.sleep(min_interval - elapsed)
        self._last_sent_at = time.monotonic()


def _build_payload(chat_id: int, text: str, options: SendOptions) -> dict[str, Any]:
    return {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": options.disable_preview,
        "disable_notification": options.silent,
    }


def _result(response: httpx.Response) -> Any:
    try:
        data = response.json()
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}
    result = data.get("result")
    return result if result is not None else {}


def _description(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("description", ""))
    return ""


def _retry_after(response: httpx.Response) -> float:
    value = response.headers.get("Retry-After")
    if not value:
        try:
            data = response.json()
        except ValueError:
            return 1.0
        parameters = data.get("parameters") if isinstance(data, dict) else None
        retry_after = parameters.get("retry_after") if isinstance(parameters, dict) else None
        if retry_after is None:
            return 1.0
        try:
            return float(retry_after)
        except (TypeError, ValueError):
            return 1.0
    try:
        return float(value)
    except ValueError:
        return 1.0
