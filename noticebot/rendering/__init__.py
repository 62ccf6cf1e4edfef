from .notice import MESSAGE_MAX_LENGTH, NoticeRenderer, RenderSettings
from .rewriter import Rule, build_rules, rewrite

__all__ = [
    "MESSAGE_MAX_LENGTH",
    "NoticeRenderer",
    "RenderSettings",
    "Rule",
    "build_rules",
    "rewrite",
]
