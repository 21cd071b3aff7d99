"""Git operations for releases.

This module provides the Repository class used by release sequences.

Usage:
    from ship.git import Repository

    repo = Repository(Path("."), options.git, shell)
    repo.init()
"""

from ship.git.repository import GitError, GitErrorKind, Repository, parse_clone_url

__all__ = [
    "GitError",
    "GitErrorKind",
    "Repository",
    "parse_clone_url",
]
