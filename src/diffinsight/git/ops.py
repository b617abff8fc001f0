"""Git operations via pygit2 - changed artifacts and content resolution."""

from __future__ import annotations

import asyncio
import fnmatch
from collections.abc import Sequence
from pathlib import Path

import pygit2
import structlog

from diffinsight.core.errors import ContentError
from diffinsight.git._internal import RepoAccess
from diffinsight.git.errors import GitError
from diffinsight.git.models import artifact_from_patch
from diffinsight.pipeline.models import ChangedArtifact, VersionPair

log = structlog.get_logger(__name__)


def matches_patterns(path: str, patterns: Sequence[str] | None) -> bool:
    """True when ``patterns`` is empty or any glob matches the path or its basename."""
    if not patterns:
        return True
    name = path.rsplit("/", 1)[-1]
    return any(fnmatch.fnmatch(path, p) or fnmatch.fnmatch(name, p) for p in patterns)


class GitOps:
    """Thin wrapper around pygit2.Repository for the analysis pipeline."""

    def __init__(self, repo_path: Path | str) -> None:
        self._access = RepoAccess(repo_path)

    @property
    def repo(self) -> pygit2.Repository:
        """Direct access to the underlying pygit2 Repository."""
        return self._access.repo

    @property
    def path(self) -> Path:
        return self._access.workdir

    def changed_artifacts(
        self,
        base: str,
        target: str | None = None,
        patterns: Sequence[str] | None = None,
    ) -> list[ChangedArtifact]:
        """Changed files between ``base`` and ``target`` (working tree when None).

        Renames are detected; each artifact carries its own unified patch.

        Raises:
            RefNotFoundError: If either ref cannot be resolved to a commit.
        """
        base_commit = self._access.commit(base)
        target_commit = self._access.commit(target) if target else None
        diff = self._access.diff(base_commit, target_commit)
        diff.find_similar(flags=pygit2.enums.DiffFind.FIND_RENAMES)

        artifacts = [artifact_from_patch(patch) for patch in diff if patch is not None]
        selected = [a for a in artifacts if matches_patterns(a.path, patterns)]
        log.debug(
            "changed_artifacts_listed",
            base=base,
            target=target or "worktree",
            total=len(artifacts),
            selected=len(selected),
        )
        return selected

    def read(self, path: str, version: str | None) -> str:
        """Text of ``path`` at ``version``; ``None`` reads the working tree."""
        if version is None:
            return self._access.text_in_worktree(path)
        return self._access.text_at(self._access.commit(version), path)


class GitContentResolver:
    """Content-resolution collaborator backed by a git repository.

    Blocking pygit2 reads run in a worker thread.
    """

    def __init__(self, git: GitOps) -> None:
        self._git = git

    async def resolve(
        self,
        path: str,
        versions: VersionPair,
        old_path: str | None = None,
    ) -> tuple[str, str]:
        return await asyncio.to_thread(self._resolve_sync, path, versions, old_path)

    def _resolve_sync(self, path: str, versions: VersionPair, old_path: str | None) -> tuple[str, str]:
        try:
            old = self._git.read(old_path or path, versions.old)
        except GitError as e:
            raise ContentError.unavailable(old_path or path, versions.old, str(e)) from e
        try:
            new = self._git.read(path, versions.new)
        except (GitError, OSError) as e:
            raise ContentError.unavailable(path, versions.new, str(e)) from e
        return old, new
