"""Pattern tier: regex signal extraction over unified diff text.

Works on the ``+``/``-`` lines of one artifact's patch only, so it needs no
full-file content and tolerates syntax the grammars reject (SCSS variables,
half-written code). Records are coarser than the AST tier's: presence of
named things on added vs removed lines, plus artifact-level prose.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import PurePosixPath

import structlog

from diffinsight.config.models import AnalysisConfig
from diffinsight.core.errors import ExtractionError
from diffinsight.diff.models import ChangeRecord, ChangeType, EntityKind
from diffinsight.diff.normalize import normalize_value
from diffinsight.extraction.stylesheet import media_breakpoints
from diffinsight.parsing.grammars import Grammar, GrammarFamily, grammar_family
from diffinsight.parsing.lexical import nesting_depth

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DiffLines:
    """Added and removed lines of one patch, without their ``+``/``-`` marker."""

    added: tuple[str, ...]
    removed: tuple[str, ...]

    @property
    def added_text(self) -> str:
        return "\n".join(self.added)

    @property
    def removed_text(self) -> str:
        return "\n".join(self.removed)


def split_diff(diff_text: str) -> DiffLines:
    """Added and removed lines inside the hunks of a unified diff.

    File headers (``diff --git``, ``index``, ``---``/``+++``) are only
    recognised before a file's first ``@@``; inside a hunk a line such as
    ``---brand: red;`` is a removed ``--brand`` custom property. Text with
    no ``@@`` line at all is read as bare hunk lines.
    """
    added: list[str] = []
    removed: list[str] = []
    lines = diff_text.splitlines()
    in_hunk = not any(line.startswith("@@") for line in lines)
    for line in lines:
        if line.startswith("@@"):
            in_hunk = True
        elif line.startswith("diff --git "):
            in_hunk = False
        elif not in_hunk:
            continue
        elif line.startswith("+"):
            added.append(line[1:])
        elif line.startswith("-"):
            removed.append(line[1:])
    return DiffLines(tuple(added), tuple(removed))


# =============================================================================
# Helpers
# =============================================================================


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" + ("" if count == 1 else "s")


def _presence(
    kind: EntityKind,
    added: Iterable[str],
    removed: Iterable[str],
    details: Callable[[str], tuple[str, ...]] | None = None,
) -> list[ChangeRecord]:
    """Added/Removed records for names present on only one side of the patch."""
    added_counts = Counter(added)
    removed_counts = Counter(removed)
    records = [
        ChangeRecord(
            change_type=ChangeType.ADDED,
            entity_kind=kind,
            identity_key=name,
            details=details(name) if details else (),
            count=count,
        )
        for name, count in added_counts.items()
        if name not in removed_counts
    ]
    records.extend(
        ChangeRecord(change_type=ChangeType.REMOVED, entity_kind=kind, identity_key=name, count=count)
        for name, count in removed_counts.items()
        if name not in added_counts
    )
    return records


def _deltas(kind: EntityKind, added: Iterable[str], removed: Iterable[str]) -> list[ChangeRecord]:
    """Added/Removed records for the net change in per-name occurrence counts."""
    added_counts = Counter(added)
    removed_counts = Counter(removed)
    records: list[ChangeRecord] = []
    for name in dict.fromkeys([*added_counts, *removed_counts]):
        delta = added_counts[name] - removed_counts[name]
        if delta:
            records.append(
                ChangeRecord(
                    change_type=ChangeType.ADDED if delta > 0 else ChangeType.REMOVED,
                    entity_kind=kind,
                    identity_key=name,
                    count=abs(delta),
                )
            )
    return records


def _fact(subject: str, *details: str, count: int = 1, change_type: ChangeType = ChangeType.ADDED) -> ChangeRecord:
    return ChangeRecord(
        change_type=change_type,
        entity_kind=EntityKind.FILE,
        identity_key=subject,
        details=tuple(details),
        count=count,
    )


def _first_group(pattern: re.Pattern[str], text: str) -> list[str]:
    return [next(g for g in m.groups() if g) for m in pattern.finditer(text)]


# =============================================================================
# Code
# =============================================================================

_FUNCTION = re.compile(
    r"function\s*\*?\s*([A-Za-z_$][\w$]*)\s*\("
    r"|(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s*)?(?:function\b|\(|[A-Za-z_$][\w$]*\s*=>)"
    r"|^\s*([A-Za-z_$][\w$]*)\s*:\s*(?:async\s*)?(?:function\b|\()",
    re.MULTILINE,
)
_IMPORT = re.compile(
    r"""import\s+(?:[\w$*{}\s,]+?\s+from\s+)?['"]([^'"]+)['"]"""
    r"""|require\(\s*['"]([^'"]+)['"]\s*\)"""
)
_JQUERY_SELECTOR = re.compile(r"""\$\(\s*['"]([^'"]+)['"]\s*\)""")
_EVENT_BIND = re.compile(r"\.(?:on|bind)\(")
_EVENT_UNBIND = re.compile(r"\.off\(")
_CONDITIONAL = re.compile(r"\bif\s*\(")
_TRY = re.compile(r"\btry\s*\{")


def _detect_code(lines: DiffLines, config: AnalysisConfig) -> list[ChangeRecord]:
    added, removed = lines.added_text, lines.removed_text
    hook = re.compile(rf"\b({re.escape(config.hook_prefix)}[A-Z][\w$]*)\s*\(")

    records = _presence(EntityKind.IMPORT, _first_group(_IMPORT, added), _first_group(_IMPORT, removed))
    records.extend(
        _presence(EntityKind.FUNCTION, _first_group(_FUNCTION, added), _first_group(_FUNCTION, removed))
    )
    records.extend(_deltas(EntityKind.HOOK_CALL, hook.findall(added), hook.findall(removed)))
    records.extend(
        _presence(
            EntityKind.SELECTOR,
            _JQUERY_SELECTOR.findall(added),
            _JQUERY_SELECTOR.findall(removed),
            details=lambda _: ("jQuery selector",),
        )
    )
    if _EVENT_BIND.search(added):
        records.append(_fact("event binding", "event handler bound"))
    if _EVENT_UNBIND.search(added) or _EVENT_UNBIND.search(removed):
        records.append(_fact("event binding", "event handler unbound", change_type=ChangeType.MODIFIED))
    if _CONDITIONAL.search(added):
        records.append(_fact("conditional logic"))
    if _TRY.search(added):
        records.append(_fact("error handling"))
    return records


# =============================================================================
# Stylesheet
# =============================================================================

_KEYFRAME_STEP = re.compile(r"^(?:from|to|[\d.]+%)(?:\s*,\s*(?:from|to|[\d.]+%))*$", re.IGNORECASE)
_MEDIA = re.compile(r"@media\s*([^{;]+?)\s*\{")
_KEYFRAMES = re.compile(r"@(?:-[a-z]+-)?keyframes\s+([\w-]+)")
_CSS_IMPORT = re.compile(r"""@import\s+(?:url\(\s*)?['"]?([^'")\s;]+)""")
_FONT_FACE = re.compile(r"@font-face\b")
_TRANSITION = re.compile(r"(?<![\w-])transition\s*:")
_TRANSFORM = re.compile(r"(?<![\w-])transform\s*:")
_LAYOUT = re.compile(r"(?<![\w-])display\s*:\s*(inline-flex|inline-grid|flex|grid)\b")
_POSITION = re.compile(r"(?<![\w-])position\s*:\s*(absolute|fixed|sticky)\b")
_COLOR = re.compile(r"#[0-9a-fA-F]{3,8}\b|\b(?:rgba?|hsla?)\([^)]*\)")
_CSS_VARIABLE = re.compile(r"(--[\w-]+)\s*:")
_PSEUDO = re.compile(
    r"(::?(?:hover|focus-visible|focus-within|focus|active|visited|disabled|checked"
    r"|first-child|last-child|nth-child\([^)]*\)|before|after|placeholder))"
)
_SCSS_VARIABLE = re.compile(r"(\$[\w-]+)\s*:")
_MIXIN = re.compile(r"@mixin\s+([\w-]+)")
_INCLUDE = re.compile(r"@include\s+([\w-]+)")
_EXTEND = re.compile(r"@extend\b")
_SCSS_FUNCTION = re.compile(r"@function\s+([\w-]+)")
_PREPROCESSOR_SUFFIXES = frozenset({".scss", ".sass"})


def selector_category(selector: str) -> str:
    if re.search(r"\s|[>+~]", selector.strip()):
        return "complex"
    if selector.startswith("#"):
        return "id"
    if selector.startswith("."):
        return "class"
    if selector.startswith("["):
        return "attribute"
    return "element"


def _selectors(lines: Iterable[str]) -> list[str]:
    found: list[str] = []
    for line in lines:
        if "{" not in line:
            continue
        head = line.split("{", 1)[0].strip()
        if not head or head.startswith(("@", "//", "/*")):
            continue
        if _KEYFRAME_STEP.match(head):
            continue
        found.extend(s.strip() for s in head.split(",") if s.strip())
    return found


def _detect_stylesheet(lines: DiffLines, config: AnalysisConfig, path: str) -> list[ChangeRecord]:
    added, removed = lines.added_text, lines.removed_text

    records = _presence(
        EntityKind.SELECTOR,
        _selectors(lines.added),
        _selectors(lines.removed),
        details=lambda s: (f"{selector_category(s)} selector",),
    )
    records.extend(
        _presence(
            EntityKind.AT_RULE,
            [f"@media {q}" for q in _MEDIA.findall(added)],
            [f"@media {q}" for q in _MEDIA.findall(removed)],
            details=lambda key: tuple(
                f"breakpoint {b}" for b in media_breakpoints(key.removeprefix("@media "))
            ),
        )
    )
    records.extend(
        _presence(
            EntityKind.AT_RULE,
            [f"@keyframes {n}" for n in _KEYFRAMES.findall(added)],
            [f"@keyframes {n}" for n in _KEYFRAMES.findall(removed)],
        )
    )
    records.extend(
        _presence(
            EntityKind.AT_RULE,
            [f"@import {s}" for s in _CSS_IMPORT.findall(added)],
            [f"@import {s}" for s in _CSS_IMPORT.findall(removed)],
        )
    )
    records.extend(
        _presence(
            EntityKind.DECLARATION,
            _CSS_VARIABLE.findall(added),
            _CSS_VARIABLE.findall(removed),
            details=lambda name: (f"CSS variable {name}",),
        )
    )

    if count := len(_FONT_FACE.findall(added)):
        records.append(_fact("@font-face", _plural(count, "font face") + " declared", count=count))
    if count := len(_TRANSITION.findall(added)):
        records.append(_fact("transitions", count=count))
    if count := len(_TRANSFORM.findall(added)):
        records.append(_fact("transforms", count=count))
    for display, count in Counter(_LAYOUT.findall(added)).items():
        system = "grid" if display.endswith("grid") else "flexbox"
        records.append(_fact(f"{system} layout", f"display: {display} on {_plural(count, 'container')}", count=count))
    for position, count in Counter(_POSITION.findall(added)).items():
        records.append(_fact(f"position: {position}", f"{_plural(count, 'element')} positioned", count=count))

    old_colors = {normalize_value(c) for c in _COLOR.findall(removed)}
    new_colors = [c for c in dict.fromkeys(normalize_value(c) for c in _COLOR.findall(added)) if c not in old_colors]
    if new_colors:
        records.append(_fact("colors", *new_colors, count=len(new_colors)))

    records.extend(_deltas(EntityKind.FILE, _PSEUDO.findall(added), _PSEUDO.findall(removed)))

    if PurePosixPath(path).suffix.lower() in _PREPROCESSOR_SUFFIXES:
        records.extend(_detect_preprocessor(lines, config))
    return records


def _detect_preprocessor(lines: DiffLines, config: AnalysisConfig) -> list[ChangeRecord]:
    added, removed = lines.added_text, lines.removed_text
    records = _presence(EntityKind.VARIABLE, _SCSS_VARIABLE.findall(added), _SCSS_VARIABLE.findall(removed))
    records.extend(
        _presence(
            EntityKind.AT_RULE,
            [f"@mixin {n}" for n in _MIXIN.findall(added)],
            [f"@mixin {n}" for n in _MIXIN.findall(removed)],
        )
    )
    records.extend(
        _presence(
            EntityKind.AT_RULE,
            [f"@function {n}" for n in _SCSS_FUNCTION.findall(added)],
            [f"@function {n}" for n in _SCSS_FUNCTION.findall(removed)],
        )
    )
    if includes := _INCLUDE.findall(added):
        records.append(_fact("mixin usage", *dict.fromkeys(includes), count=len(includes)))
    if count := len(_EXTEND.findall(added)):
        records.append(_fact("@extend", count=count))
    depth = nesting_depth(added, line_comments=True)
    if depth > config.deep_nesting_threshold:
        records.append(
            ChangeRecord(
                change_type=ChangeType.WARNING,
                entity_kind=EntityKind.FILE,
                identity_key="nesting depth",
                after=str(depth),
                details=(f"deep nesting in added lines ({depth} levels, approximate: lexical brace count)",),
            )
        )
    return records


# =============================================================================
# Markup
# =============================================================================

_TRACKED_TAGS = frozenset(
    {
        "header", "nav", "main", "article", "section", "aside", "footer", "figure", "dialog",
        "form", "textarea", "select", "button", "a", "img", "video", "audio", "svg",
        "picture", "iframe", "style", "template",
    }
)
_OPEN_TAG = re.compile(r"<([a-zA-Z][\w-]*)(?=[\s>/])")
_INPUT_TYPE = re.compile(r"""<input\b[^>]*?\btype=["']?([\w-]+)""", re.IGNORECASE)
_SCRIPT_SRC = re.compile(r"""<script\b[^>]*?\bsrc=["']([^"']+)["']""", re.IGNORECASE)
_EXTERNAL_LINK = re.compile(r"""<a\b[^>]*?\bhref=["']https?://""", re.IGNORECASE)
_BLANK_TARGET = re.compile(r"""<a\b[^>]*?\btarget=["']_blank["']""", re.IGNORECASE)
_IMG = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_ARIA = re.compile(r"\b(aria-[\w-]+|role)=")
_DATA = re.compile(r"\b(data-[\w-]+)=")
_ID = re.compile(r"""\bid=["']([^"']+)["']""")
_CLASS = re.compile(r"""\bclass=["']([^"']+)["']""")


def _tags(text: str) -> list[str]:
    return [t.lower() for t in _OPEN_TAG.findall(text) if t.lower() in _TRACKED_TAGS]


def _classes(text: str) -> list[str]:
    return [f".{c}" for value in _CLASS.findall(text) for c in value.split()]


def _detect_markup(lines: DiffLines, config: AnalysisConfig) -> list[ChangeRecord]:  # noqa: ARG001
    added, removed = lines.added_text, lines.removed_text

    records: list[ChangeRecord] = []
    for record in _deltas(EntityKind.MARKUP_ELEMENT, _tags(added), _tags(removed)):
        details: list[str] = []
        if record.identity_key == "a" and record.change_type == ChangeType.ADDED:
            if external := len(_EXTERNAL_LINK.findall(added)):
                details.append(_plural(external, "external link"))
            if blank := len(_BLANK_TARGET.findall(added)):
                details.append(f"{_plural(blank, 'link')} opening in a new tab")
        records.append(
            ChangeRecord(
                change_type=record.change_type,
                entity_kind=record.entity_kind,
                identity_key=record.identity_key,
                details=tuple(details),
                count=record.count,
            )
        )
    records.extend(
        _deltas(
            EntityKind.MARKUP_ELEMENT,
            [f"input[type={t.lower()}]" for t in _INPUT_TYPE.findall(added)],
            [f"input[type={t.lower()}]" for t in _INPUT_TYPE.findall(removed)],
        )
    )
    records.extend(
        _presence(
            EntityKind.MARKUP_ELEMENT,
            [f"script[src={s}]" for s in _SCRIPT_SRC.findall(added)],
            [f"script[src={s}]" for s in _SCRIPT_SRC.findall(removed)],
        )
    )
    records.extend(
        _presence(
            EntityKind.MARKUP_ELEMENT,
            [f"#{i}" for i in _ID.findall(added)],
            [f"#{i}" for i in _ID.findall(removed)],
        )
    )
    records.extend(_presence(EntityKind.MARKUP_ELEMENT, _classes(added), _classes(removed)))

    new_aria = [a for a in dict.fromkeys(_ARIA.findall(added)) if a not in _ARIA.findall(removed)]
    if new_aria:
        records.append(_fact("accessibility attributes", *new_aria, count=len(new_aria)))
    new_data = [a for a in dict.fromkeys(_DATA.findall(added)) if a not in _DATA.findall(removed)]
    if new_data:
        records.append(_fact("data attributes", *new_data, count=len(new_data)))

    missing_alt = sum(1 for tag in _IMG.findall(added) if not re.search(r"\balt=", tag))
    if missing_alt:
        records.append(
            ChangeRecord(
                change_type=ChangeType.WARNING,
                entity_kind=EntityKind.MARKUP_ELEMENT,
                identity_key="img",
                details=(f"{_plural(missing_alt, 'image')} without alt text",),
                count=missing_alt,
            )
        )
    return records


# =============================================================================
# Entry point
# =============================================================================


def detect_patterns(
    path: str,
    diff_text: str,
    grammar: Grammar,
    config: AnalysisConfig | None = None,
) -> list[ChangeRecord]:
    """Extract coarse change records from one artifact's unified diff.

    Raises:
        ExtractionError: ``UNSUPPORTED_GRAMMAR`` for the generic grammar
            family, ``EMPTY_RESULT`` when no detector fires.
    """
    config = config or AnalysisConfig()
    family = grammar_family(grammar)
    lines = split_diff(diff_text)

    if family == GrammarFamily.CODE:
        records = _detect_code(lines, config)
    elif family == GrammarFamily.STYLESHEET:
        records = _detect_stylesheet(lines, config, path)
    elif family == GrammarFamily.MARKUP:
        records = _detect_markup(lines, config)
    else:
        raise ExtractionError.unsupported_grammar(path, grammar.value)

    if not records:
        raise ExtractionError.empty_result(path)
    log.debug("patterns_detected", path=path, family=family.value, records=len(records))
    return records
