from __future__ import annotations

import json
from pathlib import Path
import tempfile
import unittest

from noticebot.errors import StoreFailure
from noticebot.state import Subscriber, SubscriberStore


class SubscriberStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self._tmpdir.name) / "subscribers.json"
        self.store = SubscriberStore(str(self.path))

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_missing_file_is_empty(self) -> None:
        self.assertEqual(self.store.all_ids(), [])
        self.assertIsNone(self.store.get(42))
        self.assertIsNone(self.store.get_subject_code("SI"))

    def test_put_and_get_roundtrip(self) -> None:
        subscriber = Subscriber(
            id=42,
            access_token="a",
            refresh_token="r",
            language_code="ca",
            last_notices_digest="deadbeef",
            last_notice_timestamp=1644660000,
            mute_banner_notices=True,
        )
        self.store.put(subscriber)
        self.assertEqual(self.store.all_ids(), [42])
        self.assertEqual(self.store.get(42), subscriber)

        on_disk = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertNotIn("id", on_disk["subscribers"]["42"])
        self.assertFalse(Path(f"{self.path}.tmp").exists())

    def test_delete_removes_record(self) -> None:
        self.store.put(Subscriber(id=1))
        self.store.put(Subscriber(id=2))
        self.store.delete(1)
        self.store.delete(99)
        self.assertEqual(self.store.all_ids(), [2])

    def test_subject_code_cache(self) -> None:
        self.store.put_subject_code("PROP", 270017)
        self.assertEqual(self.store.get_subject_code("PROP"), 270017)
        self.store.put(Subscriber(id=7))
        self.assertEqual(self.store.get_subject_code("PROP"), 270017)

    def test_unknown_fields_are_ignored(self) -> None:
        self.path.write_text(
            json.dumps({"version": 1, "subscribers": {"5": {"language_code": "es", "legacy": 1}}}),
            encoding="utf-8",
        )
        self.assertEqual(self.store.get(5), Subscriber(id=5, language_code="es"))

    def test_corrupt_file_raises_store_failure(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StoreFailure):
            self.store.all_ids()

    def test_malformed_record_raises_store_failure(self) -> None:
        self.path.write_text(json.dumps({"subscribers": {"5": ["x"]}}), encoding="utf-8")
        with self.assertRaises(StoreFailure):
            self.store.get(5)

    def test_has_credentials(self) -> None:
        self.assertTrue(Subscriber(id=1, access_token="a", refresh_token="r").has_credentials)
        self.assertFalse(Subscriber(id=1, access_token="a").has_credentials)


if __name__ == "__main__":
    unittest.main()
