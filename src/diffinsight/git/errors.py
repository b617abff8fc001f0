"""Errors raised while reading changes out of a git repository.

These stay inside the git collaborator: the pipeline only ever sees them
wrapped as ``ContentError`` (content resolution) and the CLI reports them
by message.
"""


class GitError(Exception):
    """A repository could not answer a diff or content request."""


class NotARepositoryError(GitError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class RefNotFoundError(GitError):
    """A base or target version names no branch, tag or commit."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Reference not found: {ref}")
        self.ref = ref


class NotACommitError(RefNotFoundError):
    """The version resolves, but to something other than a commit (a tree or blob id)."""

    def __init__(self, ref: str, kind: str) -> None:
        GitError.__init__(self, f"Reference {ref} names a {kind}, not a commit")
        self.ref = ref
        self.kind = kind


class NotAFileError(GitError):
    """The artifact path names a directory or submodule at that version."""

    def __init__(self, path: str, version: str) -> None:
        super().__init__(f"{path} is not a file at {version}")
        self.path = path
        self.version = version
