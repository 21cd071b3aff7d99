"""Error codes for CLI exit status.

Every fatal release error maps to one of these codes so CI pipelines can
tell a bad invocation apart from a broken environment or a failed push.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the `ship` command.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad increment, invalid options, bad stage dir)
    - 2: Environment error (not a git repo, dirty tree, missing token)
    - 3: Release error (hook, git, publish step failed)
    - 4: Network error (hosted-git API unreachable)
    - 5: I/O error (config file missing or unreadable)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
