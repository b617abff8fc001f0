"""Lexical brace scanning for stylesheet text.

Used where a full parse is unnecessary or unavailable: nesting-depth
measurement and the nested-dialect sniff in grammar selection. Both are
approximations. Braces inside string literals and block comments are
skipped; anything subtler (escaped braces in selectors, interpolation)
is not modelled.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

STRUCTURAL_CHARS = frozenset("{};")

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


def iter_structural(text: str, *, line_comments: bool = False) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, char)`` for ``{``, ``}`` and ``;`` outside strings and comments.

    Args:
        text: Stylesheet source.
        line_comments: Also skip ``//`` comments (SCSS/Less). Off for plain
            CSS, where ``//`` appears in unquoted ``url()`` values.
    """
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "\"'":
            i += 1
            while i < n and text[i] != ch:
                if text[i] == "\\":
                    i += 1
                elif text[i] == "\n":
                    break
                i += 1
        elif ch == "/" and i + 1 < n and text[i + 1] == "*":
            end = text.find("*/", i + 2)
            i = n if end < 0 else end + 1
        elif line_comments and ch == "/" and i + 1 < n and text[i + 1] == "/":
            end = text.find("\n", i + 2)
            i = n if end < 0 else end
        elif ch in STRUCTURAL_CHARS:
            yield i, ch
        i += 1


def nesting_depth(text: str, *, line_comments: bool = False) -> int:
    """Maximum brace depth reached in ``text``.

    Unbalanced closing braces are ignored rather than driving the depth
    negative.
    """
    depth = 0
    deepest = 0
    for _, ch in iter_structural(text, line_comments=line_comments):
        if ch == "{":
            depth += 1
            deepest = max(deepest, depth)
        elif ch == "}" and depth > 0:
            depth -= 1
    return deepest


def has_nested_rule(text: str, *, line_comments: bool = False) -> bool:
    """True if a style rule opens inside another style rule.

    Blocks whose header starts with ``@`` are at-rules; a rule inside an
    at-rule (``@media { .a {} }``) is ordinary CSS, not nesting.
    """
    stack: list[bool] = []  # True for a style-rule block
    header_start = 0
    for offset, ch in iter_structural(text, line_comments=line_comments):
        if ch == "{":
            header = _BLOCK_COMMENT.sub("", text[header_start:offset]).strip()
            is_rule = bool(header) and not header.startswith("@")
            if is_rule and any(stack):
                return True
            stack.append(is_rule)
        elif ch == "}" and stack:
            stack.pop()
        header_start = offset + 1
    return False
