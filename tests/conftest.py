"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides temporary git repositories for the git and CLI tests.
"""

import sys
from collections.abc import Callable, Generator, Mapping
from pathlib import Path

import pygit2
import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of diffinsight modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("diffinsight"):
        del sys.modules[module_name]

CommitFiles = Callable[[Mapping[str, str | None]], pygit2.Oid]


@pytest.fixture
def temp_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a temporary git repository with initial commit."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    repo = pygit2.init_repository(str(repo_path), initial_head="main")
    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"

    (repo_path / "README.md").write_text("# Test Repo\n")
    repo.index.add("README.md")
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    repo.create_commit("refs/heads/main", sig, sig, "Initial commit", tree, [])
    repo.set_head("refs/heads/main")

    yield repo


@pytest.fixture
def commit_files(temp_repo: pygit2.Repository) -> CommitFiles:
    """Write and commit files on HEAD. A ``None`` content deletes the path."""
    workdir = Path(temp_repo.workdir)

    def _commit(files: Mapping[str, str | None], message: str = "change") -> pygit2.Oid:
        for path, content in files.items():
            full = workdir / path
            if content is None:
                full.unlink()
                temp_repo.index.remove(path)
            else:
                full.parent.mkdir(parents=True, exist_ok=True)
                full.write_text(content)
                temp_repo.index.add(path)
        temp_repo.index.write()
        tree = temp_repo.index.write_tree()
        sig = pygit2.Signature("Test User", "test@example.com")
        return temp_repo.create_commit("HEAD", sig, sig, message, tree, [temp_repo.head.target])

    return _commit
