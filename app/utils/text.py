"""Text helpers shared by the notification message builders."""

from __future__ import annotations

import html
import unicodedata

ELLIPSIS = "\u2026"
DEFAULT_MAX_LENGTH = 120

_ZERO_WIDTH_JOINER = "\u200d"


def _continues_cluster(char: str) -> bool:
    """Return ``True`` when ``char`` attaches to the preceding character."""

    if char == _ZERO_WIDTH_JOINER:
        return True
    if unicodedata.combining(char):
        return True
    # Variation selectors, emoji modifiers and other enclosing/spacing marks.
    return unicodedata.category(char) in {"Mn", "Me", "Mc", "Sk"} and not char.isascii()


def truncate_text(text: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Shorten ``text`` to at most ``max_length`` characters.

    When truncation is needed the text is cut on a character boundary that
    does not split a combined glyph, trailing whitespace is trimmed and a
    single ellipsis is appended. The ellipsis counts towards ``max_length``.
    """

    if not text:
        return ""
    if max_length < 1:
        raise ValueError("max_length must be a positive integer")
    if len(text) <= max_length:
        return text

    cut = max_length - 1
    while cut > 0 and _continues_cluster(text[cut]):
        cut -= 1
    # A ZWJ at the end would glue the ellipsis onto the previous glyph.
    while cut > 0 and text[cut - 1] == _ZERO_WIDTH_JOINER:
        cut -= 1
        while cut > 0 and _continues_cluster(text[cut]):
            cut -= 1

    return f"{text[:cut].rstrip()}{ELLIPSIS}"


def escape_html(text: str) -> str:
    """Escape ``text`` for safe inclusion inside HTML markup."""

    return html.escape(text, quote=True)


__all__ = ["DEFAULT_MAX_LENGTH", "ELLIPSIS", "escape_html", "truncate_text"]
