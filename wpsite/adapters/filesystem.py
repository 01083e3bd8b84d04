"""
Filesystem adapter - site directories and files inside them.

Handles:
- Document root creation and recursive removal
- Writing files (.htaccess) with an optional mode
- Recursive owner/mode normalization
- Directory statistics for reporting
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from wpsite.config import Settings
from wpsite.core.errors import AdapterError
from wpsite.core.models import HealthStatus
from wpsite.logging import get_site_logger

logger = get_site_logger(__name__)

RESOURCE = "filesystem"


@dataclass
class DirectoryStats:
    """Size and entry counts of a directory tree."""
    size_bytes: int = 0
    files: int = 0
    directories: int = 0


class FilesystemAdapter:
    """
    Filesystem operations confined to the web root.

    Examples:
        fs = FilesystemAdapter(settings)
        path = fs.site_path("demo")          # /var/www/html/demo
        fs.create_dir(path)
        fs.write_file(f"{path}/.htaccess", content, mode=0o644)
        fs.delete_dir(path)
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.web_root = Path(settings.web_root)

    def site_path(self, site_id: str) -> str:
        return self.settings.site_dir(site_id)

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def dir_empty(self, path: str) -> bool:
        """True if path is a directory with no entries (or does not exist)."""
        target = Path(path)
        if not target.exists():
            return True
        if not target.is_dir():
            return False
        return next(target.iterdir(), None) is None

    def create_dir(self, path: str) -> bool:
        """
        Ensure a directory exists.

        Returns:
            True if the directory was created, False if it already existed

        Raises:
            AdapterError: If creation fails or path is not a directory
        """
        target = Path(path)
        if target.is_dir():
            logger.action("skip", path, "directory already exists")
            return False

        try:
            target.mkdir(parents=True, mode=self.settings.dir_mode)
        except OSError as e:
            raise AdapterError(RESOURCE, "create directory", f"{path}: {e}") from e

        logger.action("create", path)
        return True

    def delete_dir(self, path: str) -> bool:
        """
        Recursively delete a site directory.

        Returns:
            True if something was deleted, False if it was already absent

        Raises:
            AdapterError: If the path is outside the web root or deletion fails
        """
        target = Path(path)
        self._ensure_inside_web_root(target, "delete directory")

        if not target.exists() and not target.is_symlink():
            return False

        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            raise AdapterError(RESOURCE, "delete directory", f"{path}: {e}") from e

        logger.action("delete", path)
        return True

    def clear_dir(self, path: str) -> None:
        """Delete the contents of a directory but keep the directory."""
        target = Path(path)
        self._ensure_inside_web_root(target, "clear directory")

        if not target.is_dir():
            return

        try:
            for entry in target.iterdir():
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
        except OSError as e:
            raise AdapterError(RESOURCE, "clear directory", f"{path}: {e}") from e

        logger.action("delete", f"{path}/*")

    def write_file(self, path: str, content: str, mode: Optional[int] = None) -> None:
        """
        Write a text file, replacing any existing content.

        Raises:
            AdapterError: If the write fails
        """
        target = Path(path)
        try:
            target.write_text(content, encoding="utf-8")
            if mode is not None:
                target.chmod(mode)
        except OSError as e:
            raise AdapterError(RESOURCE, "write file", f"{path}: {e}") from e

        logger.action("create", path)

    def set_owner_and_mode(
        self,
        path: str,
        owner: Optional[str],
        dir_mode: int,
        file_mode: int,
    ) -> None:
        """
        Recursively apply ownership and permissions.

        Args:
            path: Tree root
            owner: "user:group", "user", or None to leave ownership alone
            dir_mode: Mode for directories (e.g., 0o755)
            file_mode: Mode for regular files (e.g., 0o644)

        Raises:
            AdapterError: If any chown/chmod fails
        """
        user, group = _split_owner(owner)

        try:
            for current, dirnames, filenames in os.walk(path):
                self._apply(current, user, group, dir_mode)
                for name in filenames:
                    file_path = os.path.join(current, name)
                    if os.path.islink(file_path):
                        continue
                    self._apply(file_path, user, group, file_mode)
        except (OSError, LookupError) as e:
            raise AdapterError(RESOURCE, "set permissions", f"{path}: {e}") from e

    def directory_stats(self, path: str) -> DirectoryStats:
        """Walk a tree and total its size and entries."""
        stats = DirectoryStats()
        if not Path(path).is_dir():
            return stats

        for current, dirnames, filenames in os.walk(path):
            stats.directories += 1
            for name in filenames:
                file_path = os.path.join(current, name)
                stats.files += 1
                try:
                    stats.size_bytes += os.lstat(file_path).st_size
                except OSError:
                    continue
        return stats

    def probe(self) -> HealthStatus:
        """Check that the web root exists, is writable and has room for a site."""
        reasons = []
        if not self.web_root.is_dir():
            reasons.append(f"web root {self.web_root} does not exist")
            return HealthStatus("web root", False, reasons)

        if not os.access(self.web_root, os.W_OK):
            reasons.append(f"web root {self.web_root} is not writable")

        try:
            free = shutil.disk_usage(self.web_root).free
        except OSError as e:
            reasons.append(f"cannot check free space: {e}")
        else:
            if free < self.settings.min_free_bytes:
                reasons.append(
                    f"only {free // (1024 * 1024)} MB free in {self.web_root}, "
                    f"{self.settings.min_free_bytes // (1024 * 1024)} MB required"
                )

        return HealthStatus("web root", not reasons, reasons)

    def _apply(self, path: str, user: Optional[str], group: Optional[str], mode: int) -> None:
        if user is not None or group is not None:
            shutil.chown(path, user=user, group=group)
        os.chmod(path, mode)

    def _ensure_inside_web_root(self, target: Path, step: str) -> None:
        # Only strict children of the web root may be removed
        root = self.web_root.resolve()
        resolved = Path(os.path.normpath(target.parent.resolve() / target.name))
        if resolved == root or root not in resolved.parents:
            raise AdapterError(
                RESOURCE, step, f"refusing to modify {target}: not inside {root}"
            )


def _split_owner(owner: Optional[str]):
    if not owner:
        return None, None
    user, _, group = owner.partition(":")
    return user or None, group or None
