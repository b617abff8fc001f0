"""Tests for git-backed artifact listing and content resolution."""

from __future__ import annotations

from pathlib import Path

import pygit2
import pytest

from diffinsight.core.errors import ContentError
from diffinsight.git import GitContentResolver, GitOps
from diffinsight.git.errors import NotACommitError, NotAFileError, NotARepositoryError, RefNotFoundError
from diffinsight.git.ops import matches_patterns
from diffinsight.pipeline.models import VersionPair

LONG_MODULE = "".join(f"export const value{i} = {i};\n" for i in range(20))


class TestChangedArtifacts:
    """Listing changed files between two commits."""

    def test_added_modified_deleted(self, temp_repo: pygit2.Repository, commit_files) -> None:
        # Given
        base = commit_files({"src/a.js": "const a = 1;\n", "src/b.css": ".b { color: red; }\n"})
        commit_files({"src/a.js": "const a = 2;\nconst c = 3;\n", "src/b.css": None, "src/new.html": "<p>hi</p>\n"})
        git = GitOps(temp_repo.workdir)

        # When
        artifacts = {a.path: a for a in git.changed_artifacts(str(base), "HEAD")}

        # Then
        assert set(artifacts) == {"src/a.js", "src/b.css", "src/new.html"}
        modified = artifacts["src/a.js"]
        assert modified.status == "modified"
        assert (modified.insertions, modified.deletions) == (2, 1)
        assert "+const c = 3;" in modified.diff_text
        assert artifacts["src/b.css"].status == "deleted"
        assert artifacts["src/new.html"].status == "added"

    def test_rename_detected(self, temp_repo: pygit2.Repository, commit_files) -> None:
        base = commit_files({"old.js": LONG_MODULE})
        commit_files({"old.js": None, "renamed.js": LONG_MODULE})

        (artifact,) = GitOps(temp_repo.workdir).changed_artifacts(str(base), "HEAD")

        assert artifact.status == "renamed"
        assert (artifact.path, artifact.old_path) == ("renamed.js", "old.js")
        assert artifact.is_rename

    def test_patterns_filter(self, temp_repo: pygit2.Repository, commit_files) -> None:
        base = commit_files({"a.js": "a\n"})
        commit_files({"a.js": "b\n", "styles/site.css": ".a {}\n"})

        artifacts = GitOps(temp_repo.workdir).changed_artifacts(str(base), "HEAD", ["*.css"])

        assert [a.path for a in artifacts] == ["styles/site.css"]

    def test_working_tree_target(self, temp_repo: pygit2.Repository, commit_files) -> None:
        commit_files({"a.js": "const a = 1;\n"})
        (Path(temp_repo.workdir) / "a.js").write_text("const a = 2;\n")

        (artifact,) = GitOps(temp_repo.workdir).changed_artifacts("HEAD")

        assert artifact.path == "a.js"
        assert artifact.status == "modified"

    def test_unknown_ref(self, temp_repo: pygit2.Repository) -> None:
        with pytest.raises(RefNotFoundError):
            GitOps(temp_repo.workdir).changed_artifacts("no-such-branch")

    def test_not_a_repository(self, tmp_path: Path) -> None:
        with pytest.raises(NotARepositoryError):
            GitOps(tmp_path / "missing")


class TestRead:
    def test_read_at_ref_and_worktree(self, temp_repo: pygit2.Repository, commit_files) -> None:
        base = commit_files({"a.js": "one\n"})
        (Path(temp_repo.workdir) / "a.js").write_text("two\n")
        git = GitOps(temp_repo.workdir)

        assert git.read("a.js", str(base)) == "one\n"
        assert git.read("a.js", None) == "two\n"
        assert git.read("missing.js", str(base)) == ""

    def test_directory_is_not_a_file(self, temp_repo: pygit2.Repository, commit_files) -> None:
        base = commit_files({"src/a.js": "a\n"})
        git = GitOps(temp_repo.workdir)

        with pytest.raises(NotAFileError):
            git.read("src", str(base))
        with pytest.raises(NotAFileError):
            git.read("src", None)

    def test_tree_id_is_not_a_commit(self, temp_repo: pygit2.Repository) -> None:
        tree_id = str(temp_repo.head.peel(pygit2.Commit).tree_id)

        with pytest.raises(NotACommitError) as exc_info:
            GitOps(temp_repo.workdir).read("README.md", tree_id)

        assert exc_info.value.kind == "tree"
        assert isinstance(exc_info.value, RefNotFoundError)


class TestGitContentResolver:
    @pytest.mark.asyncio
    async def test_resolves_both_versions(self, temp_repo: pygit2.Repository, commit_files) -> None:
        # Given
        base = commit_files({"a.js": "old\n"})
        commit_files({"a.js": "new\n"})
        resolver = GitContentResolver(GitOps(temp_repo.workdir))

        # When
        old, new = await resolver.resolve("a.js", VersionPair(str(base), "HEAD"))

        # Then
        assert (old, new) == ("old\n", "new\n")

    @pytest.mark.asyncio
    async def test_old_path_used_for_renames(self, temp_repo: pygit2.Repository, commit_files) -> None:
        base = commit_files({"old.js": "x\n"})
        commit_files({"old.js": None, "new.js": "y\n"})
        resolver = GitContentResolver(GitOps(temp_repo.workdir))

        old, new = await resolver.resolve("new.js", VersionPair(str(base), "HEAD"), old_path="old.js")

        assert (old, new) == ("x\n", "y\n")

    @pytest.mark.asyncio
    async def test_bad_version_is_content_error(self, temp_repo: pygit2.Repository) -> None:
        resolver = GitContentResolver(GitOps(temp_repo.workdir))

        with pytest.raises(ContentError) as exc_info:
            await resolver.resolve("README.md", VersionPair("no-such-ref", None))

        assert exc_info.value.error_name == "CONTENT_UNAVAILABLE"


class TestMatchesPatterns:
    @pytest.mark.parametrize(
        ("path", "patterns", "expected"),
        [
            ("src/a.js", None, True),
            ("src/a.js", [], True),
            ("src/a.js", ["*.js"], True),
            ("src/a.js", ["src/*"], True),
            ("src/a.js", ["*.css", "*.html"], False),
        ],
    )
    def test_matching(self, path: str, patterns: list[str] | None, expected: bool) -> None:
        assert matches_patterns(path, patterns) is expected
