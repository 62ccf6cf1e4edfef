from __future__ import annotations

import json
import unittest
from unittest.mock import AsyncMock, patch

import httpx

from noticebot.notifiers.message import AnnouncementMessage, ErrorMessage, NoticeMessage
from noticebot.notifiers.telegram import TelegramMessenger, TelegramSettings

from tests.helpers import make_notice


class TelegramMessengerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []
        self.pin_unreachable = False

    def _handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.pin_unreachable and request.url.path.endswith("/pinChatMessage"):
            raise httpx.ConnectError("connection reset", request=request)
        if self.responses:
            return self.responses.pop(0)
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 77}})

    async def _send(self, message) -> bool:
        settings = TelegramSettings(
            token="123:abc",
            api_base_url="https://api.telegram.org",
            timeout_seconds=5,
            user_agent="noticebot/test",
            min_interval_seconds=0,
        )
        async with httpx.AsyncClient(transport=httpx.MockTransport(self._handler)) as http:
            return await TelegramMessenger(http, settings).send(42, message)

    def _payload(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)

    async def test_notice_message_payload(self) -> None:
        message = NoticeMessage(notice=make_notice(1), text="<b>Hola</b>", silent=True)

        self.assertTrue(await self._send(message))

        self.assertEqual(str(self.requests[0].url), "https://api.telegram.org/bot123:abc/sendMessage")
        self.assertEqual(
            self._payload(),
            {
                "chat_id": 42,
                "text": "<b>Hola</b>",
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
                "disable_notification": True,
            },
        )
        self.assertEqual(len(self.requests), 1)

    async def test_announcement_is_pinned(self) -> None:
        self.assertTrue(await self._send(AnnouncementMessage(text="Nova versió")))

        self.assertFalse(self._payload(0)["disable_web_page_preview"])
        self.assertTrue(str(self.requests[1].url).endswith("/pinChatMessage"))
        self.assertEqual(self._payload(1)["message_id"], 77)

    async def test_pin_transport_error_still_counts_as_delivered(self) -> None:
        self.pin_unreachable = True

        with self.assertLogs("noticebot.notifiers.telegram", level="ERROR") as logs:
            self.assertTrue(await self._send(AnnouncementMessage(text="Nova versió")))

        self.assertEqual(len(self.requests), 2)
        self.assertIn("Failed to pin message in chat 42", logs.output[0])

    async def test_rate_limit_is_retried(self) -> None:
        self.responses = [
            httpx.Response(429, json={"ok": False, "parameters": {"retry_after": 3}}),
        ]
        with patch("noticebot.notifiers.telegram.asyncio.sleep", new=AsyncMock()) as sleep:
            with self.assertLogs("noticebot.notifiers.telegram", level="WARNING"):
                self.assertTrue(await self._send(ErrorMessage(text="x")))

        sleep.assert_any_await(3.0)
        self.assertEqual(len(self.requests), 2)

    async def test_rejected_message_returns_false(self) -> None:
        self.responses = [
            httpx.Response(403, json={"ok": False, "description": "Forbidden: bot was blocked by the user"}),
        ]
        with self.assertLogs("noticebot.notifiers.telegram", level="ERROR") as logs:
            self.assertFalse(await self._send(ErrorMessage(text="x")))

        self.assertIn("bot was blocked", logs.output[0])

    async def test_gives_up_after_repeated_rate_limits(self) -> None:
        self.responses = [httpx.Response(429, headers={"Retry-After": "1"}) for _ in range(3)]
        with patch("noticebot.notifiers.telegram.asyncio.sleep", new=AsyncMock()):
            with self.assertLogs("noticebot.notifiers.telegram", level="WARNING"):
                self.assertFalse(await self._send(ErrorMessage(text="x")))

        self.assertEqual(len(self.requests), 3)


if __name__ == "__main__":
    unittest.main()
