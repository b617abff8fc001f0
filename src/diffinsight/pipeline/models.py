"""Pipeline data models: tier results, artifacts, analyses, content resolution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from diffinsight.core.errors import ContentError, DiffInsightError
from diffinsight.diff.models import ChangeRecord, Tier
from diffinsight.parsing.grammars import Grammar

ArtifactStatus = Literal["added", "deleted", "modified", "renamed", "copied", "unknown"]


# =============================================================================
# Tier results
# =============================================================================


@dataclass(frozen=True, slots=True)
class Ok:
    """Successful tier attempt."""

    records: tuple[ChangeRecord, ...]


@dataclass(frozen=True, slots=True)
class Err:
    """Failed tier attempt. ``reason`` is an error-code name such as ``UNPARSEABLE_SYNTAX``."""

    reason: str
    message: str

    @classmethod
    def from_error(cls, error: DiffInsightError) -> Err:
        return cls(reason=error.error_name, message=error.message)


TierResult = Ok | Err


@dataclass(frozen=True, slots=True)
class TierFailure:
    """One demotion, recorded on the final analysis."""

    tier: Tier
    reason: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"tier": self.tier.value, "reason": self.reason, "message": self.message}


# =============================================================================
# Artifacts
# =============================================================================


@dataclass(frozen=True, slots=True)
class ChangedArtifact:
    """One changed file as reported by the diff-text collaborator."""

    path: str
    status: ArtifactStatus = "modified"
    old_path: str | None = None
    insertions: int = 0
    deletions: int = 0
    binary: bool = False
    diff_text: str = ""

    @property
    def is_rename(self) -> bool:
        return self.status == "renamed" and self.old_path is not None and self.old_path != self.path


@dataclass(frozen=True, slots=True)
class ArtifactAnalysis:
    """Consumer-facing result for one artifact: records plus the tier that produced them."""

    path: str
    status: ArtifactStatus
    grammar: Grammar
    tier: Tier
    records: tuple[ChangeRecord, ...]
    insertions: int = 0
    deletions: int = 0
    old_path: str | None = None
    failures: tuple[TierFailure, ...] = ()

    @property
    def warnings(self) -> tuple[ChangeRecord, ...]:
        return tuple(r for r in self.records if r.is_warning)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "old_path": self.old_path,
            "status": self.status,
            "grammar": self.grammar.value,
            "tier": self.tier.value,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "records": [r.to_dict() for r in self.records],
            "failures": [f.to_dict() for f in self.failures],
        }


# =============================================================================
# Content resolution
# =============================================================================


@dataclass(frozen=True, slots=True)
class VersionPair:
    """Old and new version identifiers. ``new=None`` means the working tree."""

    old: str
    new: str | None = None


@runtime_checkable
class ContentResolver(Protocol):
    """Returns the full text of an artifact at both versions.

    A version where the artifact does not exist yields ``""``. Failures to
    read an existing version raise ``ContentError``.
    """

    async def resolve(
        self,
        path: str,
        versions: VersionPair,
        old_path: str | None = None,
    ) -> tuple[str, str]: ...


@dataclass
class MemoryContentResolver:
    """In-memory resolver keyed by ``(version, path)``."""

    contents: dict[tuple[str | None, str], str] = field(default_factory=dict)

    @classmethod
    def from_pairs(cls, versions: VersionPair, files: Mapping[str, tuple[str, str]]) -> MemoryContentResolver:
        """Build from ``{path: (old_text, new_text)}``."""
        resolver = cls()
        for path, (old, new) in files.items():
            resolver.put(versions.old, path, old)
            resolver.put(versions.new, path, new)
        return resolver

    def put(self, version: str | None, path: str, text: str) -> None:
        self.contents[(version, path)] = text

    async def resolve(
        self,
        path: str,
        versions: VersionPair,
        old_path: str | None = None,
    ) -> tuple[str, str]:
        source = old_path or path
        if (versions.old, source) not in self.contents and (versions.new, path) not in self.contents:
            raise ContentError.unavailable(path, versions.new, "no content registered for either version")
        return (
            self.contents.get((versions.old, source), ""),
            self.contents.get((versions.new, path), ""),
        )
