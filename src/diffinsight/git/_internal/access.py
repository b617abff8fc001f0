"""Repository handle: version lookup, file text and raw diffs over pygit2."""

from __future__ import annotations

from pathlib import Path

import pygit2

from diffinsight.git.errors import NotACommitError, NotAFileError, NotARepositoryError, RefNotFoundError


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class RepoAccess:
    """Owns the pygit2.Repository; callers never touch pygit2 objects except diffs."""

    def __init__(self, repo_path: Path | str) -> None:
        self._path = Path(repo_path)
        try:
            self._repo = pygit2.Repository(str(self._path))
        except pygit2.GitError as e:
            raise NotARepositoryError(str(self._path)) from e

    @property
    def repo(self) -> pygit2.Repository:
        return self._repo

    @property
    def workdir(self) -> Path:
        return Path(self._repo.workdir) if self._repo.workdir else self._path

    def commit(self, version: str) -> pygit2.Commit:
        """Commit named by ``version``; annotated tags are peeled."""
        try:
            obj, _ = self._repo.resolve_refish(version)
        except (pygit2.GitError, KeyError, ValueError) as e:
            raise RefNotFoundError(version) from e
        if isinstance(obj, pygit2.Tag):
            obj = obj.peel(pygit2.Commit)
        if not isinstance(obj, pygit2.Commit):
            raise NotACommitError(version, type(obj).__name__.lower())
        return obj

    def text_at(self, commit: pygit2.Commit, path: str) -> str:
        """File text at ``commit``. A path absent from that tree reads as empty."""
        try:
            entry = commit.tree[path]
        except KeyError:
            return ""
        obj = self._repo.get(entry.id)
        if not isinstance(obj, pygit2.Blob):
            raise NotAFileError(path, commit.short_id)
        return _decode(obj.data)

    def text_in_worktree(self, path: str) -> str:
        candidate = self.workdir / path
        if candidate.is_dir():
            raise NotAFileError(path, "worktree")
        if not candidate.exists():
            return ""
        return _decode(candidate.read_bytes())

    def diff(self, base: pygit2.Commit, target: pygit2.Commit | None) -> pygit2.Diff:
        """Tree-to-tree diff, or tree-to-worktree when ``target`` is None."""
        if target is None:
            return self._repo.diff(base)
        return self._repo.diff(base, target)
