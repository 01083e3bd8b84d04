"""
Hosts file management.

Entries are matched by exact line equality, never by substring, so
"127.0.0.1 demo.localhost" never touches "127.0.0.1 demo.localhost.example"
or a commented-out copy. Writes go to a temp file in the same directory and
are swapped in with os.replace, keeping the original mode and owner.
Bytes that are not valid UTF-8 pass through unchanged (surrogateescape).
"""

import os
import tempfile
from pathlib import Path
from typing import List, Tuple

from wpsite.core.errors import AdapterError
from wpsite.logging import get_site_logger

logger = get_site_logger(__name__)

RESOURCE = "hosts"


class HostsFile:
    """
    Exact-line editor for /etc/hosts.

    Example:
        hosts = HostsFile("/etc/hosts")
        hosts.add("127.0.0.1 demo.localhost")
        hosts.contains("127.0.0.1 demo.localhost")  # True
        hosts.remove("127.0.0.1 demo.localhost")
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def contains(self, line: str) -> bool:
        lines, _ = self._read()
        return any(_strip_eol(existing) == line for existing in lines)

    def add(self, line: str) -> bool:
        """
        Prepend a line unless it is already present.

        Returns:
            True if the file changed
        """
        lines, stat = self._read()
        if any(_strip_eol(existing) == line for existing in lines):
            logger.info("Hosts entry already exists: %s", line)
            return False

        self._write([line + "\n"] + lines, stat, "add entry")
        logger.action("create", f"{self.path}: {line}")
        return True

    def remove(self, line: str) -> bool:
        """
        Remove every line exactly equal to ``line``.

        Returns:
            True if the file changed
        """
        lines, stat = self._read()
        kept = [existing for existing in lines if _strip_eol(existing) != line]
        if len(kept) == len(lines):
            logger.info("Hosts entry does not exist: %s", line)
            return False

        self._write(kept, stat, "remove entry")
        logger.action("delete", f"{self.path}: {line}")
        return True

    def _read(self) -> Tuple[List[str], os.stat_result]:
        try:
            data = self.path.read_bytes().decode("utf-8", errors="surrogateescape")
            stat = self.path.stat()
        except FileNotFoundError:
            return [], None
        except OSError as e:
            raise AdapterError(RESOURCE, "read", f"{self.path}: {e}") from e
        return data.splitlines(keepends=True), stat

    def _write(self, lines: List[str], stat, step: str) -> None:
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb", delete=False, dir=str(self.path.parent), prefix=".hosts."
            ) as tmp:
                tmp.write("".join(lines).encode("utf-8", errors="surrogateescape"))
                tmp.flush()
                os.fsync(tmp.fileno())
                tmp_path = tmp.name

            if stat is not None:
                os.chmod(tmp_path, stat.st_mode & 0o7777)
                if (stat.st_uid, stat.st_gid) != (os.getuid(), os.getgid()):
                    os.chown(tmp_path, stat.st_uid, stat.st_gid)
            else:
                os.chmod(tmp_path, 0o644)

            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise AdapterError(RESOURCE, step, f"{self.path}: {e}") from e


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")
