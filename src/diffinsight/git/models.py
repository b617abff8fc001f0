"""Conversions from pygit2 diff objects to pipeline artifacts."""

from __future__ import annotations

import pygit2

from diffinsight.pipeline.models import ArtifactStatus, ChangedArtifact

_DELTA_STATUS_MAP: dict[int, ArtifactStatus] = {
    pygit2.GIT_DELTA_ADDED: "added",
    pygit2.GIT_DELTA_DELETED: "deleted",
    pygit2.GIT_DELTA_MODIFIED: "modified",
    pygit2.GIT_DELTA_RENAMED: "renamed",
    pygit2.GIT_DELTA_COPIED: "copied",
}


def artifact_from_patch(patch: pygit2.Patch) -> ChangedArtifact:
    """Build a ``ChangedArtifact`` from one file patch of a pygit2 diff."""
    delta = patch.delta
    status = _DELTA_STATUS_MAP.get(delta.status, "unknown")
    old_path = delta.old_file.path if delta.old_file else None
    new_path = delta.new_file.path if delta.new_file else None
    path = (old_path if status == "deleted" else new_path) or old_path or ""
    _, insertions, deletions = patch.line_stats
    binary = bool(delta.is_binary)
    return ChangedArtifact(
        path=path,
        status=status,
        old_path=old_path if status in ("renamed", "copied") else None,
        insertions=insertions,
        deletions=deletions,
        binary=binary,
        diff_text="" if binary else (patch.text or ""),
    )
