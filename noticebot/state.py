from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import json
import os
from typing import Any

from .errors import StoreFailure


STATE_VERSION = 1


@dataclass
class Subscriber:
    id: int
    access_token: str = ""
    refresh_token: str = ""
    token_expiry: int = 0
    language_code: str = ""
    last_notices_digest: str = ""
    last_notice_timestamp: int = 0
    mute_banner_notices: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_token and self.refresh_token)


class SubscriberStore:
    """JSON file holding subscriber records and the subject code cache.

    Every operation reads the file afresh and writes it back whole; the fan-out
    job is its only writer while it runs.
    """

    def __init__(self, path: str) -> None:
        self._path = path

    def all_ids(self) -> list[int]:
        return [int(key) for key in self._load()["subscribers"]]

    def get(self, subscriber_id: int) -> Subscriber | None:
        raw = self._load()["subscribers"].get(str(subscriber_id))
        if raw is None:
            return None
        return _parse_subscriber(subscriber_id, raw)

    def put(self, subscriber: Subscriber) -> None:
        data = self._load()
        record = asdict(subscriber)
        record.pop("id")
        data["subscribers"][str(subscriber.id)] = record
        self._save(data)

    def delete(self, subscriber_id: int) -> None:
        data = self._load()
        if data["subscribers"].pop(str(subscriber_id), None) is not None:
            self._save(data)

    def get_subject_code(self, acronym: str) -> int | None:
        value = self._load()["subject_codes"].get(acronym)
        return int(value) if value is not None else None

    def put_subject_code(self, acronym: str, code: int) -> None:
        data = self._load()
        data["subject_codes"][acronym] = int(code)
        self._save(data)

    def _load(self) -> dict[str, Any]:
        if not os.path.exists(self._path):
            return {"version": STATE_VERSION, "subscribers": {}, "subject_codes": {}}
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StoreFailure(f"cannot read {self._path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise StoreFailure(f"{self._path} root must be a mapping")
        subscribers = raw.get("subscribers") or {}
        subject_codes = raw.get("subject_codes") or {}
        if not isinstance(subscribers, dict) or not isinstance(subject_codes, dict):
            raise StoreFailure(f"{self._path} has a malformed layout")
        return {
            "version": int(raw.get("version", STATE_VERSION)),
            "subscribers": subscribers,
            "subject_codes": subject_codes,
        }

    def _save(self, data: dict[str, Any]) -> None:
        tmp_path = f"{self._path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StoreFailure(f"cannot write {self._path}: {exc}") from exc


def _parse_subscriber(subscriber_id: int, raw: Any) -> Subscriber:
    if not isinstance(raw, dict):
        raise StoreFailure(f"subscriber {subscriber_id} record must be a mapping")
    known = {item.name for item in fields(Subscriber)} - {"id"}
    values = {key: value for key, value in raw.items() if key in known}
    try:
        return Subscriber(id=int(subscriber_id), **values)
    except TypeError as exc:
        raise StoreFailure(f"subscriber {subscriber_id} record is malformed: {exc}") from exc
