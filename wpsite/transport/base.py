"""
Base transport interface.
"""

import re
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

# --dbpass=..., --admin_password=..., --password=...
_SECRET_ARG_RE = re.compile(r"^(--[\w-]*pass[\w-]*=).*$", re.IGNORECASE)

# Exit codes used when the command never produced one
EXIT_TIMEOUT = 124
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


def mask_secrets(args: Sequence[str]) -> List[str]:
    """
    Return a copy of args with password values replaced.

    Example:
        mask_secrets(["wp", "config", "create", "--dbpass=hunter2"])
        # ['wp', 'config', 'create', '--dbpass=***']
    """
    return [_SECRET_ARG_RE.sub(r"\1***", str(arg)) for arg in args]


class Transport(ABC):
    """
    Abstract base class for command running.

    Implementations:
    - LocalTransport: Run commands locally via subprocess
    """

    @abstractmethod
    def run_command(
        self,
        args: Sequence[str],
        input_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[str, int]:
        """
        Run a command from a list of arguments (no shell).

        Args:
            args: Command and arguments as list
            input_text: Text fed to the command's stdin
            timeout: Seconds before the command is killed

        Returns:
            Tuple of (output, exit_code). A missing executable reports
            exit code 127, a timeout 124.

        Example:
            output, code = transport.run_command(["apache2ctl", "configtest"])
        """
        pass

    @abstractmethod
    def which(self, name: str) -> Optional[str]:
        """
        Locate an executable.

        Returns:
            Absolute path, or None if it is not on PATH
        """
        pass

    def close(self) -> None:
        """Release transport resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
