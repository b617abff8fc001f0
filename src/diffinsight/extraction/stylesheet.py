"""Structural extraction for stylesheets (plain and nested dialects).

Selector identity is the full selector path: every enclosing rule's
selector and every enclosing at-rule's ``@name params``, root first, joined
by ``PATH_SEPARATOR``. A bare ``.title`` nested under ``.card`` and under
``.header`` therefore yields two unrelated keys.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

import structlog

from diffinsight.diff.layout import layout_details
from diffinsight.diff.models import Entity, EntityKind, StructuralModel
from diffinsight.diff.normalize import normalize_value
from diffinsight.parsing.grammars import Grammar
from diffinsight.parsing.lexical import nesting_depth
from diffinsight.parsing.nodes import (
    CssAtRule,
    CssDeclaration,
    CssNode,
    CssRule,
    CssStylesheet,
    convert_stylesheet,
)
from diffinsight.parsing.treesitter import TreeSitterParser

log = structlog.get_logger(__name__)

PATH_SEPARATOR = " / "
PROPERTY_SEPARATOR = " :: "

AT_RULE_BUCKETS = frozenset({"media", "keyframes", "import", "font-face", "supports", "container"})

_BREAKPOINT = re.compile(
    r"\(\s*((?:min|max)-(?:width|height))\s*:\s*([\d.]+)\s*(px|em|rem|vw|vh)?\s*\)",
    re.IGNORECASE,
)
_IMPORT_SOURCE = re.compile(r"""^(?:url\(\s*)?['"]?([^'")\s]+)['"]?\s*\)?""")
_LINE_COMMENT_SUFFIXES = frozenset({".scss", ".sass", ".less"})


def declaration_key(owner_key: str, prop: str) -> str:
    return f"{owner_key}{PROPERTY_SEPARATOR}{prop}" if owner_key else prop


def media_breakpoints(params: str) -> tuple[str, ...]:
    return tuple(
        f"{feature.lower()}: {value}{unit or ''}"
        for feature, value, unit in _BREAKPOINT.findall(params)
    )


def _unquote(text: str) -> str:
    return text.strip().strip("'\"")


class _StylesheetBuilder:
    """Visitor over the typed stylesheet variants."""

    def __init__(self) -> None:
        self.model = StructuralModel()

    def build(self, sheet: CssStylesheet) -> StructuralModel:
        self._visit_block(sheet.children, (), owner_key="")
        return self.model

    def _visit_block(self, children: tuple[CssNode, ...], ancestors: tuple[str, ...], owner_key: str) -> None:
        self._declarations(
            [c for c in children if isinstance(c, CssDeclaration)],
            owner_key,
        )
        for child in children:
            if isinstance(child, CssRule):
                self._visit_rule(child, ancestors)
            elif isinstance(child, CssAtRule):
                self._visit_at_rule(child, ancestors)

    # =========================================================================
    # Variants
    # =========================================================================

    def _declarations(self, declarations: list[CssDeclaration], owner_key: str) -> None:
        effective: dict[str, str] = {}
        for decl in declarations:
            effective[decl.property] = normalize_value(decl.value)

        occurrences: dict[str, int] = {}
        for decl in declarations:
            occurrence = occurrences.get(decl.property, 0)
            occurrences[decl.property] = occurrence + 1
            normalized = normalize_value(decl.value)
            if decl.important:
                normalized += " !important"
            attributes: dict[str, object] = {
                "property": decl.property,
                "value": decl.value + (" !important" if decl.important else ""),
                "normalized": normalized,
                "important": decl.important,
                "occurrence": occurrence,
                "owner": owner_key,
            }
            if decl.property == "display":
                attributes["layout"] = layout_details(normalize_value(decl.value), effective)
            if not decl.value.strip():
                attributes["malformed"] = f"declaration '{decl.property}' has an empty value"
            self.model.add(
                Entity(
                    kind=EntityKind.DECLARATION,
                    identity_key=declaration_key(owner_key, decl.property),
                    attributes=attributes,
                    location=decl.location,
                )
            )

    def _visit_rule(self, rule: CssRule, ancestors: tuple[str, ...]) -> None:
        path = (*ancestors, rule.selector)
        key = PATH_SEPARATOR.join(path)
        declarations = [c for c in rule.children if isinstance(c, CssDeclaration)]
        attributes: dict[str, object] = {
            "selector": rule.selector,
            "path": path,
            "depth": len(path),
            "declaration_count": len(declarations),
            "nested_rules": sum(1 for c in rule.children if isinstance(c, CssRule)),
        }
        if not rule.selector:
            attributes["malformed"] = "rule has an empty selector"
        elif not rule.children:
            attributes["malformed"] = f"rule '{rule.selector}' is empty"
        self.model.add(
            Entity(kind=EntityKind.SELECTOR, identity_key=key, attributes=attributes, location=rule.location)
        )
        self._visit_block(rule.children, path, owner_key=key)

    def _at_rule_label(self, at_rule: CssAtRule, name: str) -> tuple[str, dict[str, object]]:
        extra: dict[str, object] = {}
        if name == "import":
            match = _IMPORT_SOURCE.match(at_rule.params)
            source = match.group(1) if match else at_rule.params
            extra["source"] = source
            extra["media"] = at_rule.params[match.end() :].strip() if match else ""
            return f"@import {source}", extra
        if name == "keyframes":
            extra["steps"] = tuple(
                c.selector for c in at_rule.children or () if isinstance(c, CssRule)
            )
            return f"@keyframes {at_rule.params}", extra
        if name == "font-face":
            family = next(
                (
                    _unquote(c.value)
                    for c in at_rule.children or ()
                    if isinstance(c, CssDeclaration) and c.property == "font-family"
                ),
                None,
            )
            extra["family"] = family
            return (f"@font-face {family}" if family else "@font-face"), extra
        if name == "media":
            extra["breakpoints"] = media_breakpoints(at_rule.params)
        return f"@{name} {at_rule.params}".strip(), extra

    def _visit_at_rule(self, at_rule: CssAtRule, ancestors: tuple[str, ...]) -> None:
        name = "keyframes" if at_rule.name.endswith("keyframes") else at_rule.name
        label, extra = self._at_rule_label(at_rule, name)
        path = (*ancestors, label)
        key = PATH_SEPARATOR.join(path)
        attributes: dict[str, object] = {
            "name": name,
            "raw_name": at_rule.name,
            "params": at_rule.params,
            "bucket": name if name in AT_RULE_BUCKETS else "other",
            "has_block": at_rule.children is not None,
            **extra,
        }
        self.model.add(
            Entity(kind=EntityKind.AT_RULE, identity_key=key, attributes=attributes, location=at_rule.location)
        )
        if at_rule.children is not None:
            self._visit_block(at_rule.children, path, owner_key=key)


def build_stylesheet_model(sheet: CssStylesheet, source: str = "", *, line_comments: bool = False) -> StructuralModel:
    """Build the Structural Model from converted stylesheet nodes.

    ``source`` feeds the lexical nesting-depth measurement stored in
    ``model.metadata``.
    """
    model = _StylesheetBuilder().build(sheet)
    model.metadata["nesting_depth"] = nesting_depth(source, line_comments=line_comments)
    model.metadata["nesting_depth_approximate"] = True
    return model


def extract_stylesheet(
    content: str,
    grammar: Grammar,
    *,
    path: str,
    parser: TreeSitterParser,
) -> StructuralModel:
    """Parse and extract one version of a stylesheet artifact.

    Raises:
        ExtractionError: If the CSS grammar rejects ``content`` (including
            preprocessor-only syntax such as ``$variables``).
    """
    result = parser.parse(content, "css", path)
    sheet = convert_stylesheet(result.root_node)
    line_comments = (
        grammar == Grammar.STYLESHEET_NESTED
        and PurePosixPath(path).suffix.lower() in _LINE_COMMENT_SUFFIXES
    )
    model = build_stylesheet_model(sheet, content, line_comments=line_comments)
    log.debug("stylesheet_extracted", path=path, entities=len(model), grammar=grammar.value)
    return model
