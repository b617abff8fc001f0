"""Tests for the analyze command."""

from __future__ import annotations

import json
from pathlib import Path

import pygit2
import pytest
from click.testing import CliRunner

from diffinsight import __version__
from diffinsight.cli.main import cli

LOGIN_OLD = """\
export function login(username, password) {
  return validate(username, password);
}
"""

LOGIN_NEW = """\
export async function login(username, password, rememberMe = false) {
  const response = await fetch('/api/login', { method: 'POST' });
  return response.json();
}
"""


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIFFINSIGHT__LOGGING__LEVEL", "ERROR")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestAnalyzeCommand:
    """End-to-end runs against a temporary repository."""

    def test_json_output(self, runner: CliRunner, temp_repo: pygit2.Repository, commit_files) -> None:
        # Given
        base = commit_files({"src/auth.js": LOGIN_OLD, "notes.txt": "a\n"})
        commit_files({"src/auth.js": LOGIN_NEW, "notes.txt": "b\n"})

        # When
        result = runner.invoke(
            cli, ["analyze", str(base), "--target", "HEAD", "--repo", temp_repo.workdir, "--json"]
        )

        # Then
        assert result.exit_code == 0, result.output
        payload = {item["path"]: item for item in json.loads(result.stdout)}
        assert payload["src/auth.js"]["tier"] == "ast"
        login = next(r for r in payload["src/auth.js"]["records"] if r["identity_key"] == "login")
        assert login["change_type"] == "Modified"
        assert "changed to async" in login["details"]
        assert payload["notes.txt"]["tier"] == "generic"
        assert payload["notes.txt"]["records"][0]["details"] == ["+1 -1 lines"]

    def test_plain_output_with_tier_counts(
        self, runner: CliRunner, temp_repo: pygit2.Repository, commit_files
    ) -> None:
        base = commit_files({"src/auth.js": LOGIN_OLD})
        commit_files({"src/auth.js": LOGIN_NEW})

        result = runner.invoke(cli, ["analyze", str(base), "--target", "HEAD", "--repo", temp_repo.workdir])

        assert result.exit_code == 0, result.output
        assert "src/auth.js [ast]" in result.stdout
        assert "Modified Function login" in result.stdout
        assert result.stdout.rstrip().endswith("1 file: 1 ast, 0 pattern, 0 generic")

    def test_file_patterns(self, runner: CliRunner, temp_repo: pygit2.Repository, commit_files) -> None:
        base = commit_files({"a.js": "const a = 1;\n", "b.css": ".b { color: red; }\n"})
        commit_files({"a.js": "const a = 2;\n", "b.css": ".b { color: blue; }\n"})

        result = runner.invoke(
            cli,
            ["analyze", str(base), "--target", "HEAD", "--repo", temp_repo.workdir, "--files", "*.css", "--json"],
        )

        assert result.exit_code == 0, result.output
        assert [item["path"] for item in json.loads(result.stdout)] == ["b.css"]

    def test_working_tree_without_changes(self, runner: CliRunner, temp_repo: pygit2.Repository) -> None:
        result = runner.invoke(cli, ["analyze", "HEAD", "--repo", temp_repo.workdir])

        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "No changes."

    def test_working_tree_changes(self, runner: CliRunner, temp_repo: pygit2.Repository) -> None:
        (Path(temp_repo.workdir) / "README.md").write_text("# Test Repo\n\nMore.\n")

        result = runner.invoke(cli, ["analyze", "HEAD", "--repo", temp_repo.workdir, "--json"])

        assert result.exit_code == 0, result.output
        (item,) = json.loads(result.stdout)
        assert (item["path"], item["tier"]) == ("README.md", "generic")

    def test_unknown_ref_fails(self, runner: CliRunner, temp_repo: pygit2.Repository) -> None:
        result = runner.invoke(cli, ["analyze", "no-such-ref", "--repo", temp_repo.workdir])

        assert result.exit_code != 0
        assert "Reference not found: no-such-ref" in result.output

    def test_outside_repository_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["analyze", "HEAD", "--repo", str(tmp_path)])

        assert result.exit_code != 0
        assert "Not inside a git repository" in result.output


class TestVersion:
    def test_version_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
