"""Typed node variants for the stylesheet and markup grammars.

tree-sitter trees are converted once into small frozen sum types so that the
extractors dispatch on a closed set of variants instead of probing untyped
nodes. Comments, text and error nodes are dropped during conversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from diffinsight.diff.models import SourceLocation
from diffinsight.parsing.treesitter import is_selectorless_block, node_location, node_text

# =============================================================================
# Stylesheet variants
# =============================================================================


@dataclass(frozen=True, slots=True)
class CssDeclaration:
    property: str
    value: str
    important: bool
    location: SourceLocation


@dataclass(frozen=True, slots=True)
class CssRule:
    selector: str
    children: tuple[CssNode, ...]
    location: SourceLocation


@dataclass(frozen=True, slots=True)
class CssAtRule:
    """``@name params { children }``; ``children`` is None for statement at-rules."""

    name: str
    params: str
    children: tuple[CssNode, ...] | None
    location: SourceLocation


CssNode = CssDeclaration | CssRule | CssAtRule


@dataclass(frozen=True, slots=True)
class CssStylesheet:
    children: tuple[CssNode, ...]


_CSS_BLOCK_TYPES = frozenset({"block", "keyframe_block_list"})


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _slice(node: Any, start_byte: int, end_byte: int) -> str:
    raw: bytes = node.text
    return raw[start_byte - node.start_byte : end_byte - node.start_byte].decode(
        "utf-8", errors="replace"
    )


def _css_declaration(node: Any) -> CssDeclaration:
    prop_node = None
    colon = None
    important = None
    semicolon = None
    for child in node.children:
        if child.type == "property_name" and prop_node is None:
            prop_node = child
        elif child.type == ":" and colon is None:
            colon = child
        elif child.type == "important":
            important = child
        elif child.type == ";":
            semicolon = child

    if colon is None:
        prop, _, value = node_text(node).partition(":")
        return CssDeclaration(
            prop.strip().lower(), value.strip().rstrip(";").strip(), False, node_location(node)
        )

    end = node.end_byte
    if important is not None:
        end = important.start_byte
    elif semicolon is not None:
        end = semicolon.start_byte
    prop = node_text(prop_node) if prop_node is not None else _slice(node, node.start_byte, colon.start_byte)
    prop = prop.strip()
    if not prop.startswith("--"):
        prop = prop.lower()
    return CssDeclaration(
        property=prop,
        value=_collapse(_slice(node, colon.end_byte, end)),
        important=important is not None,
        location=node_location(node),
    )


def _css_children(block: Any) -> tuple[CssNode, ...]:
    converted: list[CssNode] = []
    for child in block.named_children:
        item = _css_node(child)
        if item is not None:
            converted.append(item)
    return tuple(converted)


def _css_rule(node: Any) -> CssRule:
    selectors = node.child_by_field_name("selectors")
    if selectors is None:
        selectors = next((c for c in node.named_children if c.type == "selectors"), None)
    block = next((c for c in node.named_children if c.type == "block"), None)
    return CssRule(
        selector=_collapse(node_text(selectors)),
        children=_css_children(block) if block is not None else (),
        location=node_location(node),
    )


def _selectorless_rule(node: Any) -> CssRule:
    block = next((c for c in node.named_children if c.type == "block"), None)
    return CssRule(
        selector="",
        children=_css_children(block if block is not None else node),
        location=node_location(node),
    )


def _keyframe_block(node: Any) -> CssRule:
    block = next((c for c in node.named_children if c.type == "block"), None)
    offset = next((c for c in node.children if c.type != "block"), None)
    return CssRule(
        selector=_collapse(node_text(offset)).lower(),
        children=_css_children(block) if block is not None else (),
        location=node_location(node),
    )


def _css_at_rule(node: Any) -> CssAtRule:
    keyword = node.children[0]
    name = node_text(keyword).lstrip("@").lower()
    block = next((c for c in node.children if c.type in _CSS_BLOCK_TYPES), None)
    params_end = block.start_byte if block is not None else node.end_byte
    params = _collapse(_slice(node, keyword.end_byte, params_end)).rstrip(";").strip()

    children: tuple[CssNode, ...] | None = None
    if block is not None and block.type == "keyframe_block_list":
        children = tuple(_keyframe_block(c) for c in block.named_children if c.type == "keyframe_block")
    elif block is not None:
        children = _css_children(block)
    return CssAtRule(name=name, params=params, children=children, location=node_location(node))


def _css_node(node: Any) -> CssNode | None:
    if node.type == "declaration":
        return _css_declaration(node)
    if node.type == "rule_set":
        return _css_rule(node)
    if node.type.endswith("_statement") or node.type == "at_rule":
        return _css_at_rule(node)
    if is_selectorless_block(node):
        return _selectorless_rule(node)
    # comment, other ERROR nodes, stray selectors
    return None


def convert_stylesheet(root: Any) -> CssStylesheet:
    """Convert a tree-sitter-css ``stylesheet`` node."""
    return CssStylesheet(children=_css_children(root))


# =============================================================================
# Markup variants
# =============================================================================


@dataclass(frozen=True, slots=True)
class HtmlElement:
    tag: str
    attributes: tuple[tuple[str, str | None], ...]
    children: tuple[HtmlElement, ...]
    location: SourceLocation
    raw_text: str = ""  # body of <script>/<style>

    def attribute(self, name: str) -> str | None:
        for key, value in self.attributes:
            if key == name:
                return value
        return None

    def has_attribute(self, name: str) -> bool:
        return any(key == name for key, _ in self.attributes)


@dataclass(frozen=True, slots=True)
class HtmlDocument:
    children: tuple[HtmlElement, ...]


_HTML_ELEMENT_TYPES = frozenset({"element", "script_element", "style_element"})


def _html_attribute(node: Any) -> tuple[str, str | None]:
    name = ""
    value: str | None = None
    for child in node.named_children:
        if child.type == "attribute_name":
            name = node_text(child).lower()
        elif child.type == "attribute_value":
            value = node_text(child)
        elif child.type == "quoted_attribute_value":
            inner = next((c for c in child.named_children if c.type == "attribute_value"), None)
            value = node_text(inner) if inner is not None else ""
    return name, value


def _html_element(node: Any) -> HtmlElement:
    tag = ""
    attributes: list[tuple[str, str | None]] = []
    children: list[HtmlElement] = []
    raw_text = ""
    for child in node.named_children:
        if child.type in ("start_tag", "self_closing_tag"):
            for part in child.named_children:
                if part.type == "tag_name":
                    tag = node_text(part).lower()
                elif part.type == "attribute":
                    attributes.append(_html_attribute(part))
        elif child.type in _HTML_ELEMENT_TYPES:
            children.append(_html_element(child))
        elif child.type == "raw_text":
            raw_text = node_text(child)
    return HtmlElement(
        tag=tag,
        attributes=tuple(attributes),
        children=tuple(children),
        location=node_location(node),
        raw_text=raw_text,
    )


def convert_document(root: Any) -> HtmlDocument:
    """Convert a tree-sitter-html ``document`` node."""
    return HtmlDocument(
        children=tuple(_html_element(c) for c in root.named_children if c.type in _HTML_ELEMENT_TYPES)
    )
