"""Selector-driven HTML rewriting into Telegram's HTML subset.

``rewrite`` parses the markup with BeautifulSoup, matches every rule's selector
against the untouched tree first, then applies the matched transforms element by
element in document order, in rule order. Matching up front keeps rules
independent: a rule that renames or unwraps an element never changes what a
later rule's selector sees.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass
import re
from typing import Callable, Sequence
from urllib.parse import urlencode

from bs4 import BeautifulSoup, Comment, Tag

from ..errors import RenderFailure


# tags Telegram accepts in HTML parse mode
SUPPORTED_TAGS = frozenset(
    {"a", "b", "strong", "i", "em", "u", "ins", "s", "strike", "del", "code", "pre", "tg-spoiler"}
)
TOP_LEVEL_LIST_ITEM_PREFIX = "  • "
NESTED_LIST_ITEM_PREFIX = "    • "
NESTED_LIST_ITEM_SELECTOR = "li > ul > li, li > ol > li"

# whitespace-only strings under the document root are kept verbatim, "\r\n" included
PRESERVE_WHITESPACE_TAGS = frozenset({BeautifulSoup.ROOT_TAG_NAME, "pre", "textarea"})

# the parser decodes every entity and serialization re-escapes only <, > and &;
# a named &quot; rides through the tree as a private-use character instead
QUOT_ENTITY_RE = re.compile(r"&quot;", re.IGNORECASE)
QUOT_PLACEHOLDER = "\ue000"


@dataclass(frozen=True)
class Rule:
    selector: str
    transform: Callable[[Tag], None]


def rewrite(html: str, rules: Sequence[Rule]) -> str:
    try:
        soup = BeautifulSoup(
            QUOT_ENTITY_RE.sub(QUOT_PLACEHOLDER, html),
            "html.parser",
            preserve_whitespace_tags=PRESERVE_WHITESPACE_TAGS,
        )
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()
        plan = [
            (element, [rule for rule in rules if element.css.match(rule.selector)])
            for element in soup.find_all(True)
        ]
    except Exception as exc:
        raise RenderFailure(f"cannot parse notice HTML: {exc}") from exc

    for element, matched in plan:
        for rule in matched:
            if element.parent is None:
                # replaced or unwrapped by an earlier rule
                break
            try:
                rule.transform(element)
            except Exception as exc:
                raise RenderFailure(
                    f"rule {rule.selector!r} failed on <{element.name}>: {exc}"
                ) from exc
    return str(soup).replace(QUOT_PLACEHOLDER, "&quot;")


def build_rules(base_url: str, mailto_redirect_url: str) -> tuple[Rule, ...]:
    """Rules turning Racó notice HTML into Telegram markup.

    ``mailto_redirect_url`` must already end in ``?`` or ``&``.
    """

    def make_absolute(element: Tag) -> None:
        element["href"] = base_url + element["href"]

    def redirect_mailto(element: Tag) -> None:
        # Telegram clients don't open mailto: links
        payload = base64.urlsafe_b64encode(element["href"].encode("utf-8")).decode("ascii")
        element["href"] = mailto_redirect_url + urlencode({"payload": payload})

    return (
        Rule('div[class="extraInfo"]', _newline_before),
        Rule('span[id="horaExamen"]', _newline_after),
        Rule('span[class="label"]', _label_to_italic),
        Rule('span[style="text-decoration:underline"]', _underline),
        Rule('a[href^="/"]', make_absolute),
        Rule('a[href^="mailto:"]', redirect_mailto),
        Rule("br", _line_break),
        Rule(NESTED_LIST_ITEM_SELECTOR, _nested_list_item),
        Rule(f"li:not({NESTED_LIST_ITEM_SELECTOR})", _top_level_list_item),
        Rule("*", _strip_unsupported),
    )


def _newline_before(element: Tag) -> None:
    element.insert_before("\n")


def _newline_after(element: Tag) -> None:
    element.insert_after("\n")


def _label_to_italic(element: Tag) -> None:
    del element["class"]
    element.name = "i"
    element.insert_before("- ")


def _underline(element: Tag) -> None:
    del element["style"]
    element.name = "u"


def _line_break(element: Tag) -> None:
    element.replace_with("\n")


def _nested_list_item(element: Tag) -> None:
    element.insert_before(NESTED_LIST_ITEM_PREFIX)
    element.insert_after("\n")


def _top_level_list_item(element: Tag) -> None:
    element.insert_before(TOP_LEVEL_LIST_ITEM_PREFIX)
    element.insert_after("\n")


def _strip_unsupported(element: Tag) -> None:
    if element.name not in SUPPORTED_TAGS:
        element.unwrap()
        return
    href = element.get("href") if element.name == "a" else None
    element.attrs = {"href": href} if href is not None else {}
