"""Canonicalization of stylesheet literal values.

``normalize_value`` is pure and idempotent: it only rewrites tokens into
forms that its own patterns map to themselves.
"""

from __future__ import annotations

import re

_LENGTH_UNITS = (
    "px|em|rem|ex|ch|vw|vh|vmin|vmax|svh|lvh|dvh|cm|mm|in|pt|pc|q|cqw|cqh|%"
)

_WHITESPACE = re.compile(r"\s+")
_SHORT_HEX = re.compile(r"#([0-9a-fA-F])([0-9a-fA-F])([0-9a-fA-F])(?![0-9a-zA-Z_-])")
_HEX = re.compile(r"#[0-9a-fA-F]{3,8}(?![0-9a-zA-Z_-])")
_RGB_CALL = re.compile(r"\b(rgba?)\(([^()]*)\)", re.IGNORECASE)
_ZERO_LENGTH = re.compile(
    rf"(?<![\w.#-])[-+]?0*\.?0+(?:{_LENGTH_UNITS})(?![\w%-])", re.IGNORECASE
)
_BARE_DECIMAL = re.compile(r"(?<![\w.#-])(-?)(\d*)\.(\d+)(?![\w.%(-])")


def _expand_short_hex(match: re.Match[str]) -> str:
    r, g, b = match.groups()
    return f"#{r}{r}{g}{g}{b}{b}".lower()


def _format_decimal(match: re.Match[str]) -> str:
    sign, whole, frac = match.groups()
    value = float(f"{whole or '0'}.{frac}")
    formatted = f"{value:.2f}"
    if sign and float(formatted) != 0:
        return f"-{formatted}"
    return formatted


def _strip_call_whitespace(match: re.Match[str]) -> str:
    return f"{match.group(1).lower()}({_WHITESPACE.sub('', match.group(2))})"


def normalize_value(raw: str) -> str:
    """Map a raw declaration value to a canonical comparable form.

    ``#ABC`` → ``#aabbcc``, ``0px`` → ``0``, ``.5`` → ``0.50``,
    ``rgb( 1 , 2 , 3 )`` → ``rgb(1,2,3)``.
    """
    value = _WHITESPACE.sub(" ", raw.strip())
    value = _SHORT_HEX.sub(_expand_short_hex, value)
    value = _HEX.sub(lambda m: m.group(0).lower(), value)
    value = _RGB_CALL.sub(_strip_call_whitespace, value)
    value = _ZERO_LENGTH.sub("0", value)
    return _BARE_DECIMAL.sub(_format_decimal, value)
