"""Structural extraction for HTML documents.

Every element becomes a MarkupElement keyed by its tag plus attribute
signature (``tag#id.class[name=…][type=…]``), independent of position.
"""

from __future__ import annotations

import structlog

from diffinsight.diff.models import Entity, EntityKind, StructuralModel
from diffinsight.parsing.nodes import HtmlDocument, HtmlElement, convert_document
from diffinsight.parsing.treesitter import TreeSitterParser

log = structlog.get_logger(__name__)

# Attributes that participate in the identity signature, in signature order.
SIGNATURE_ATTRIBUTES = ("name", "type", "rel", "src", "href", "for", "role")
SIGNATURE_TAGS = {
    "script": ("src", "type"),
    "link": ("rel", "href"),
    "meta": ("name", "property", "charset", "http-equiv"),
    "a": ("href",),
    "img": ("src",),
    "source": ("src", "type"),
}
SEMANTIC_TAGS = frozenset(
    {"header", "nav", "main", "article", "section", "aside", "footer", "figure", "dialog"}
)
ACCESSIBILITY_PREFIXES = ("aria-",)


def element_signature(element: HtmlElement) -> str:
    signature = element.tag
    element_id = element.attribute("id")
    if element_id:
        signature += f"#{element_id}"
    classes = sorted((element.attribute("class") or "").split())
    if classes:
        signature += "".join(f".{c}" for c in classes)
    for name in SIGNATURE_TAGS.get(element.tag, SIGNATURE_ATTRIBUTES):
        value = element.attribute(name)
        if value is not None:
            signature += f"[{name}={value}]" if value else f"[{name}]"
    return signature


def _malformed(element: HtmlElement) -> str | None:
    if element.tag == "img" and not element.has_attribute("alt"):
        return "<img> without alt text"
    if (
        element.tag == "a"
        and (element.attribute("target") or "").lower() == "_blank"
        and not element.has_attribute("rel")
    ):
        return "<a target=_blank> without rel"
    return None


class _MarkupBuilder:
    def __init__(self) -> None:
        self.model = StructuralModel()

    def build(self, document: HtmlDocument) -> StructuralModel:
        for element in document.children:
            self._visit(element, depth=0)
        return self.model

    def _visit(self, element: HtmlElement, depth: int) -> None:
        attributes = {
            name: value
            for name, value in element.attributes
            if name not in ("id", "class")
        }
        entity_attributes: dict[str, object] = {
            "tag": element.tag,
            "id": element.attribute("id"),
            "classes": tuple(sorted((element.attribute("class") or "").split())),
            "attributes": attributes,
            "accessibility": tuple(
                sorted(
                    name
                    for name in attributes
                    if name.startswith(ACCESSIBILITY_PREFIXES) or name == "role"
                )
            ),
            "data_attributes": tuple(sorted(n for n in attributes if n.startswith("data-"))),
            "semantic": element.tag in SEMANTIC_TAGS,
            "depth": depth,
        }
        if element.tag in ("script", "style") and element.raw_text.strip():
            entity_attributes["inline_length"] = len(element.raw_text.strip())
        if (reason := _malformed(element)) is not None:
            entity_attributes["malformed"] = reason
        self.model.add(
            Entity(
                kind=EntityKind.MARKUP_ELEMENT,
                identity_key=element_signature(element),
                attributes=entity_attributes,
                location=element.location,
            )
        )
        for child in element.children:
            self._visit(child, depth + 1)


def build_markup_model(document: HtmlDocument) -> StructuralModel:
    return _MarkupBuilder().build(document)


def extract_markup(content: str, *, path: str, parser: TreeSitterParser) -> StructuralModel:
    """Parse and extract one version of an HTML artifact."""
    result = parser.parse(content, "html", path)
    model = build_markup_model(convert_document(result.root_node))
    log.debug("markup_extracted", path=path, entities=len(model))
    return model
