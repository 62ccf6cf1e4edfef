from __future__ import annotations

from datetime import datetime, timedelta

from noticebot.sources.base import INSTITUTION_TZ, Notice


BASE_TIME = datetime(2022, 2, 12, 10, 0, 0, tzinfo=INSTITUTION_TZ)


def make_notice(
    notice_id: int,
    offset_seconds: int = 0,
    subject_code: str = "SI",
    title: str = "Avís",
    text: str = "<p>Hola</p>",
) -> Notice:
    published = BASE_TIME + timedelta(seconds=offset_seconds)
    return Notice(
        id=notice_id,
        subject_code=subject_code,
        title=title,
        text=text,
        created_at=published.replace(hour=0, minute=0, second=0),
        modified_at=published,
        expires_at=published + timedelta(days=30),
    )
