"""Internal components for git operations - not part of public API."""

from diffinsight.git._internal.access import RepoAccess

__all__ = ["RepoAccess"]
