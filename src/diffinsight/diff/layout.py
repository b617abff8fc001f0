"""Layout-system sub-analysis for ``display: flex`` / ``display: grid`` rules."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum


class Indeterminate(Enum):
    """Sentinel for a column count that cannot be known statically."""

    TOKEN = "indeterminate"

    def __str__(self) -> str:
        return self.value


INDETERMINATE = Indeterminate.TOKEN

FLEX_DISPLAYS = frozenset({"flex", "inline-flex"})
GRID_DISPLAYS = frozenset({"grid", "inline-grid"})

_FLEX_COMPANIONS = (
    ("flex-direction", "direction"),
    ("flex-wrap", "wrap"),
    ("justify-content", "justify"),
    ("align-items", "align"),
    ("align-content", "align content"),
)
_GAP_PROPERTIES = ("gap", "column-gap", "row-gap", "grid-gap")


def split_top_level(text: str, sep: str | None = None) -> list[str]:
    """Split on whitespace (or ``sep``) outside parentheses and brackets."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in "([":
            depth += 1
        elif ch in ")]" and depth > 0:
            depth -= 1
        is_sep = ch == sep if sep is not None else ch.isspace()
        if is_sep and depth == 0:
            if current:
                parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if current and "".join(current).strip():
        parts.append("".join(current).strip())
    return parts


def count_grid_columns(template: str) -> int | Indeterminate:
    """Number of column tracks in a ``grid-template-columns`` value.

    ``repeat(N, tracks)`` multiplies the inner track count by N; the
    ``auto-fill``/``auto-fit`` repeat forms (and ``subgrid``) are indeterminate.
    Line names in brackets are not tracks.
    """
    total = 0
    for token in split_top_level(template.strip()):
        lowered = token.lower()
        if lowered.startswith("["):
            continue
        if lowered in ("none", "auto-flow"):
            continue
        if lowered == "subgrid" or lowered == "masonry":
            return INDETERMINATE
        if lowered.startswith("repeat(") and lowered.endswith(")"):
            args = split_top_level(token[len("repeat(") : -1], sep=",")
            if len(args) < 2:
                return INDETERMINATE
            times = args[0].strip().lower()
            if times in ("auto-fill", "auto-fit"):
                return INDETERMINATE
            try:
                repeat_count = int(times)
            except ValueError:
                return INDETERMINATE
            inner = count_grid_columns(",".join(args[1:]))
            if inner is INDETERMINATE:
                return INDETERMINATE
            total += repeat_count * inner
            continue
        total += 1
    return total


def _gap_details(declarations: Mapping[str, str]) -> list[str]:
    return [f"{prop}: {declarations[prop]}" for prop in _GAP_PROPERTIES if prop in declarations]


def layout_details(display: str, declarations: Mapping[str, str]) -> tuple[str, ...]:
    """Sub-detail lines for the layout system a ``display`` value selects.

    Args:
        display: Normalized ``display`` value.
        declarations: Effective (last-wins) property → value map of the
            owning rule.

    Returns:
        Detail lines; empty for non-layout display values.
    """
    display = display.lower().strip()
    if display in FLEX_DISPLAYS:
        lines = [
            f"{label}: {declarations[prop]}"
            for prop, label in _FLEX_COMPANIONS
            if prop in declarations
        ]
        if "flex-direction" not in declarations:
            lines.insert(0, "direction: row (default)")
        return tuple(lines + _gap_details(declarations))

    if display in GRID_DISPLAYS:
        details: list[str] = []
        template = declarations.get("grid-template-columns")
        if template is not None:
            columns = count_grid_columns(template)
            if columns is INDETERMINATE:
                details.append(f"columns: {INDETERMINATE}")
            else:
                details.append(f"columns: {columns}")
        if "grid-template-areas" in declarations:
            details.append("named template areas")
        return tuple(details + _gap_details(declarations))

    return ()
