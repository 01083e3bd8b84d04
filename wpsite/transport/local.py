"""
Local transport - run commands on the local machine.
"""

import shutil
import subprocess
from typing import Optional, Sequence, Tuple

from wpsite.transport.base import (
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    EXIT_TIMEOUT,
    Transport,
    mask_secrets,
)
from wpsite.logging import get_logger

logger = get_logger(__name__)


class LocalTransport(Transport):
    """
    Local transport for running commands on the local machine.

    Uses subprocess for command execution.
    """

    def __init__(self, default_timeout: Optional[float] = None):
        """
        Args:
            default_timeout: Timeout applied when run_command gets none
        """
        self.default_timeout = default_timeout

    def run_command(
        self,
        args: Sequence[str],
        input_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[str, int]:
        """
        Run command from list of arguments.

        Returns:
            Tuple of (stdout + stderr, exit_code)
        """
        args = [str(arg) for arg in args]
        if timeout is None:
            timeout = self.default_timeout

        logger.debug("$ %s", " ".join(mask_secrets(args)))

        try:
            result = subprocess.run(
                args,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            return f"{args[0]}: command not found", EXIT_NOT_FOUND
        except OSError as e:
            return f"{args[0]}: {e.strerror or e}", EXIT_NOT_EXECUTABLE
        except subprocess.TimeoutExpired:
            return f"{args[0]}: timed out after {timeout}s", EXIT_TIMEOUT

        return result.stdout + result.stderr, result.returncode

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)
