"""Data models for structural diffing.

All models are plain dataclasses / frozen dataclasses with no parser coupling.
A ``StructuralModel`` is built fresh per extraction call and discarded after
diffing; ``ChangeRecord`` is the immutable output unit.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class EntityKind(StrEnum):
    """Closed set of entity kinds, in the order records are emitted."""

    FILE = "File"
    IMPORT = "Import"
    EXPORT = "Export"
    VARIABLE = "Variable"
    CLASS = "Class"
    FUNCTION = "Function"
    COMPONENT = "Component"
    HOOK_CALL = "HookCall"
    SELECTOR = "Selector"
    DECLARATION = "Declaration"
    AT_RULE = "AtRule"
    MARKUP_ELEMENT = "MarkupElement"


class ChangeType(StrEnum):
    ADDED = "Added"
    REMOVED = "Removed"
    MODIFIED = "Modified"
    OVERRIDDEN = "Overridden"
    WARNING = "Warning"


class Tier(StrEnum):
    """Fidelity level that produced a result."""

    AST = "ast"
    PATTERN = "pattern"
    GENERIC = "generic"


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Line/column span (1-based lines, 0-based columns)."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int


@dataclass(frozen=True, slots=True)
class Parameter:
    """One formal parameter of a function."""

    name: str
    has_default: bool = False
    default_kind: str | None = None  # "literal" | "complex"
    rest: bool = False
    destructured: bool = False
    members: tuple[str, ...] = ()

    def render(self) -> str:
        text = f"...{self.name}" if self.rest else self.name
        if self.has_default:
            text += " = …" if self.default_kind == "complex" else " = <literal>"
        return text


@dataclass(frozen=True, slots=True)
class ClassMethod:
    """Method summary recorded on a Class entity."""

    name: str
    kind: str = "method"  # method | constructor | getter | setter | field
    static: bool = False
    is_async: bool = False


@dataclass(frozen=True, slots=True)
class Entity:
    """One named structural element of a parsed artifact.

    Identity for matching across versions is ``(kind, identity_key)``.
    ``location`` is carried for diagnostics and never compared.
    """

    kind: EntityKind
    identity_key: str
    attributes: dict[str, Any] = field(default_factory=dict, hash=False)
    location: SourceLocation | None = field(default=None, compare=False)

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)


@dataclass(slots=True)
class StructuralModel:
    """Ordered multiset of entities extracted from one version of one artifact."""

    entities: list[Entity] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add(self, entity: Entity) -> None:
        self.entities.append(entity)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def of_kind(self, kind: EntityKind) -> list[Entity]:
        return [e for e in self.entities if e.kind == kind]

    def group(self, kind: EntityKind) -> dict[str, list[Entity]]:
        """Group entities of one kind by identity key, in first-appearance order."""
        groups: dict[str, list[Entity]] = {}
        for entity in self.entities:
            if entity.kind == kind:
                groups.setdefault(entity.identity_key, []).append(entity)
        return groups

    def sort_by_location(self) -> None:
        """Stable sort so nested entities appear after their enclosing ones."""
        self.entities.sort(
            key=lambda e: (e.location.start_line, e.location.start_col)
            if e.location
            else (0, 0)
        )


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """One reported unit of difference between two structural models."""

    change_type: ChangeType
    entity_kind: EntityKind
    identity_key: str
    before: str | None = None
    after: str | None = None
    details: tuple[str, ...] = ()
    count: int = 1

    @property
    def label(self) -> str:
        """Identity key with the occurrence-count suffix applied."""
        if self.count > 1:
            return f"{self.identity_key} (×{self.count})"
        return self.identity_key

    @property
    def is_warning(self) -> bool:
        return self.change_type == ChangeType.WARNING

    def describe(self) -> str:
        return f"{self.change_type} {self.entity_kind} {self.label}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "change_type": self.change_type.value,
            "entity_kind": self.entity_kind.value,
            "identity_key": self.identity_key,
            "count": self.count,
            "before": self.before,
            "after": self.after,
            "details": list(self.details),
        }
