from __future__ import annotations

from dataclasses import dataclass
import html
import logging
import re

from .rewriter import Rule, build_rules, rewrite
from ..errors import RenderFailure
from ..locales import Locale, get_locale
from ..sources.base import INSTITUTION_TZ, Attachment, Notice
from ..sources.fibapi import RACO_BASE_URL


MESSAGE_MAX_LENGTH = 4096
DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"
ELLIPSIS = "…"

HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)


@dataclass
class RenderSettings:
    mailto_redirect_url: str
    base_url: str = RACO_BASE_URL


class NoticeRenderer:
    def __init__(self, settings: RenderSettings) -> None:
        self._rules: tuple[Rule, ...] = build_rules(settings.base_url, settings.mailto_redirect_url)
        self._logger = logging.getLogger(__name__)

    def render(self, notice: Notice, language_code: str, link_url: str) -> str:
        locale = get_locale(language_code)
        header = render_header(notice, locale, link_url)
        parts = [header]

        if notice.text:
            try:
                body = rewrite(notice.text, self._rules)
            except RenderFailure as exc:
                self._logger.error("Failed to rewrite HTML of notice %s: %s", notice.id, exc)
                return _with_header(notice, locale, link_url, locale.internal_error_message)
            body = HTML_COMMENT_RE.sub("", body)
            parts.append(body.strip("\n\r"))

        if notice.attachments:
            parts.append(render_attachments(notice.attachments, locale))

        text = "\n\n".join(parts)
        if message_length(text) > MESSAGE_MAX_LENGTH:
            return _with_header(notice, locale, link_url, locale.notice_too_long_message.format(url=link_url))
        return text


def render_header(notice: Notice, locale: Locale, link_url: str, max_title_length: int | None = None) -> str:
    # Telegram hashtags can't contain dashes
    code = notice.subject_code.removeprefix("#").replace("-", "_")
    published = notice.published_at.astimezone(INSTITUTION_TZ).strftime(DATETIME_FORMAT)
    title = escape_truncated(notice.title, max_title_length)
    return (
        f"[#{code}] <b>{title}</b>\n\n"
        f'<i>{published}</i>  <a href="{link_url}">{locale.notice_original_link_text}</a>'
    )


def render_attachments(attachments: tuple[Attachment, ...], locale: Locale) -> str:
    noun = locale.attachment_noun_singular
    ordered = list(attachments)
    if len(ordered) > 1:
        noun = locale.attachment_noun_plural
        ordered.sort(key=lambda attachment: attachment.name)

    lines = [locale.attachment_list_header.format(count=len(ordered), noun=noun)]
    for attachment in ordered:
        size = byte_count_iec(attachment.size).replace(".", locale.decimal_separator)
        name = html.escape(attachment.name, quote=False)
        lines.append(f'<a href="{attachment.redirect_url}">{name}</a>  ({size})')
    return "\n".join(lines)


def byte_count_iec(size: int) -> str:
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}iB"


def message_length(text: str) -> int:
    """Length as Telegram counts it, in UTF-16 code units."""
    return len(text.encode("utf-16-le")) // 2


def escape_truncated(text: str, limit: int | None = None) -> str:
    """HTML-escape ``text``, cut to ``limit`` UTF-16 units with a trailing ellipsis.

    The cut never splits an entity.
    """
    escaped = html.escape(text, quote=False)
    if limit is None or message_length(escaped) <= limit:
        return escaped
    if limit < len(ELLIPSIS):
        return ""
    pieces = []
    used = len(ELLIPSIS)
    for char in text:
        piece = html.escape(char, quote=False)
        size = message_length(piece)
        if used + size > limit:
            break
        pieces.append(piece)
        used += size
    return "".join(pieces) + ELLIPSIS


def _with_header(notice: Notice, locale: Locale, link_url: str, line: str) -> str:
    text = f"{render_header(notice, locale, link_url)}\n\n{line}"
    overflow = message_length(text) - MESSAGE_MAX_LENGTH
    if overflow <= 0:
        return text
    # only the title is unbounded
    title_length = message_length(html.escape(notice.title, quote=False))
    header = render_header(notice, locale, link_url, max(title_length - overflow, 0))
    return f"{header}\n\n{line}"
