from __future__ import annotations

import json
import unittest
import zlib

import httpx

from noticebot.errors import AuthorizationExpired, SourceUnavailable
from noticebot.sources.fibapi import (
    LOGIN_REDIRECT_BASE_URL,
    NOTICES_URL,
    FIBAPIClient,
    FIBAPISettings,
    compute_digest,
)


NOTICES_BODY = json.dumps(
    {
        "count": 1,
        "results": [
            {
                "id": 123522,
                "titol": "Inicio del curso",
                "codi_assig": "PROP",
                "text": "<p>Hola</p>",
                "data_insercio": "2022-02-12T00:00:00",
                "data_modificacio": "2022-02-12T11:29:37",
                "data_caducitat": "2022-07-20T00:00:00",
                "adjunts": [
                    {
                        "tipus_mime": "application/pdf",
                        "nom": "Normativa-2q2122.pdf",
                        "url": "https://api.fib.upc.edu/v2/jo/avisos/adjunt/96612",
                        "data_modificacio": "2022-02-12T04:24:35",
                        "mida": 121304,
                    }
                ],
            }
        ],
    }
).encode("utf-8")


class FIBAPIClientTests(unittest.IsolatedAsyncioTestCase):
    async def _fetch(self, handler):
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = FIBAPIClient(
                http, FIBAPISettings(access_token="secret", timeout_seconds=5, user_agent="noticebot/test")
            )
            return await client.fetch_notices()

    async def test_parses_notices_and_digests_body(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=NOTICES_BODY)

        fetch = await self._fetch(handler)

        self.assertEqual(str(requests[0].url), NOTICES_URL)
        self.assertEqual(requests[0].headers["Authorization"], "Bearer secret")
        self.assertEqual(fetch.digest, f"{zlib.crc32(NOTICES_BODY):08x}")
        notice = fetch.notices[0]
        self.assertEqual((notice.id, notice.subject_code, notice.title), (123522, "PROP", "Inicio del curso"))
        self.assertEqual(notice.published_at.strftime("%H:%M:%S"), "11:29:37")
        attachment = notice.attachments[0]
        self.assertEqual(attachment.size, 121304)
        self.assertEqual(
            attachment.redirect_url,
            LOGIN_REDIRECT_BASE_URL + "https%3A%2F%2Fapi.fib.upc.edu%2Fv2%2Fjo%2Favisos%2Fadjunt%2F96612",
        )

    async def test_unauthorized_means_expired(self) -> None:
        for status in (400, 401):
            with self.subTest(status=status):
                with self.assertRaises(AuthorizationExpired):
                    await self._fetch(lambda request: httpx.Response(status))

    async def test_server_error_is_unavailable(self) -> None:
        with self.assertRaises(SourceUnavailable) as ctx:
            await self._fetch(lambda request: httpx.Response(500))
        self.assertNotIsInstance(ctx.exception, AuthorizationExpired)

    async def test_malformed_body_is_unavailable(self) -> None:
        with self.assertRaises(SourceUnavailable):
            await self._fetch(lambda request: httpx.Response(200, content=b"<html>"))
        with self.assertRaises(SourceUnavailable):
            await self._fetch(lambda request: httpx.Response(200, json={"results": [{"id": 1}]}))

    async def test_network_error_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(SourceUnavailable):
            await self._fetch(handler)

    async def test_empty_results(self) -> None:
        fetch = await self._fetch(lambda request: httpx.Response(200, json={"count": 0, "results": []}))
        self.assertEqual(fetch.notices, [])


class DigestTests(unittest.TestCase):
    def test_digest_is_stable_hex(self) -> None:
        self.assertEqual(compute_digest(b""), "00000000")
        self.assertEqual(compute_digest(b"abc"), compute_digest(b"abc"))
        self.assertNotEqual(compute_digest(b"abc"), compute_digest(b"abd"))
        self.assertEqual(len(compute_digest(NOTICES_BODY)), 8)


if __name__ == "__main__":
    unittest.main()
