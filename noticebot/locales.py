from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Locale:
    notice_original_link_text: str
    attachment_noun_singular: str
    attachment_noun_plural: str
    attachment_list_header: str
    decimal_separator: str
    notice_too_long_message: str
    internal_error_message: str
    authorization_expired_message: str


EN = Locale(
    notice_original_link_text="Link",
    attachment_noun_singular="attachment",
    attachment_noun_plural="attachments",
    attachment_list_header="<i>📎 With {count} {noun}:</i>",
    decimal_separator=".",
    notice_too_long_message=(
        "🤖 Sorry, but this message is too long to be sent by Telegram, "
        'please view it through <a href="{url}">this link</a>.'
    ),
    internal_error_message="<i>An internal error has occurred.</i>",
    authorization_expired_message="Your <i>FIB API</i> authorization has expired, please /login again.",
)

ES = Locale(
    notice_original_link_text="Enlace",
    attachment_noun_singular="adjunto",
    attachment_noun_plural="adjuntos",
    attachment_list_header="<i>📎 Con {count} {noun}:</i>",
    decimal_separator=",",
    notice_too_long_message=(
        "🤖 Lo siento, pero este mensaje es demasiado largo para enviarlo por Telegram, "
        'por favor véalo a través de <a href="{url}">este enlace</a>.'
    ),
    internal_error_message="<i>Se ha producido un error interno.</i>",
    authorization_expired_message=(
        "Tu autorización de <i>FIB API</i> ha caducado, por favor, /login para iniciar la sesión de nuevo."
    ),
)

CA = Locale(
    notice_original_link_text="Enllaç",
    attachment_noun_singular="adjunt",
    attachment_noun_plural="adjunts",
    attachment_list_header="<i>📎 Amb {count} {noun}:</i>",
    decimal_separator=",",
    notice_too_long_message=(
        "🤖 Ho sento, però aquest missatge és massa llarg per enviar-lo per Telegram, "
        'si us plau veges-lo a través <a href="{url}">d\'aquest enllaç</a>.'
    ),
    internal_error_message="<i>S'ha produït un error intern.</i>",
    authorization_expired_message=(
        "La teva autorització de <i>FIB API</i> ha caducat, si us plau, /login per iniciar la sessió de nou."
    ),
)

LOCALES = {"en": EN, "es": ES, "ca": CA}
DEFAULT_LOCALE = EN


def get_locale(language_code: str | None) -> Locale:
    return LOCALES.get((language_code or "").lower(), DEFAULT_LOCALE)
