"""Git collaborator: changed artifacts, diff text and content resolution."""

from diffinsight.git.errors import (
    GitError,
    NotACommitError,
    NotAFileError,
    NotARepositoryError,
    RefNotFoundError,
)
from diffinsight.git.models import artifact_from_patch
from diffinsight.git.ops import GitContentResolver, GitOps, matches_patterns

__all__ = [
    # Main classes
    "GitOps",
    "GitContentResolver",
    "artifact_from_patch",
    "matches_patterns",
    # Errors
    "GitError",
    "NotACommitError",
    "NotAFileError",
    "NotARepositoryError",
    "RefNotFoundError",
]
