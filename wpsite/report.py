"""
Read-only reporting: per-site details, site listing and host environment.

Nothing here mutates any resource. Lookups that fail (service down,
WP-CLI missing) degrade to None/"Not available" instead of raising, since a
report is most useful exactly when something is broken.
"""

import platform
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import distro

from wpsite.config import Settings
from wpsite.core.errors import AdapterError
from wpsite.core.models import HealthStatus
from wpsite.logging import get_site_logger

logger = get_site_logger(__name__)

DB_NAME_PATTERN = re.compile(r"""define\(\s*['"]DB_NAME['"]\s*,\s*['"]([^'"]*)['"]\s*\)""")


@dataclass
class SiteStatus:
    """Everything known about one site."""
    site_id: str
    directory: str
    url: str
    directory_exists: bool = False
    size_bytes: int = 0
    files: int = 0
    directories: int = 0
    vhost_config_exists: bool = False
    enabled: bool = False
    hosts_entry: bool = False
    wordpress_installed: bool = False
    wordpress_version: Optional[str] = None
    home_url: Optional[str] = None
    admin_email: Optional[str] = None
    title: Optional[str] = None
    database: Optional[str] = None
    database_exists: Optional[bool] = None
    table_count: Optional[int] = None
    database_size: Optional[int] = None


@dataclass
class SiteSummary:
    """One entry of the site listing."""
    name: str
    wordpress: bool
    enabled: bool = False


@dataclass
class DiskUsage:
    total: int
    used: int
    free: int


@dataclass
class EnvironmentStatus:
    """Host platform and dependency health."""
    system: str
    distro: str
    distro_version: str
    kernel: str
    arch: str
    apache_version: str
    mysql_version: str
    wp_cli_version: str
    probes: List[HealthStatus] = field(default_factory=list)
    disk: Optional[DiskUsage] = None
    modules: List[str] = field(default_factory=list)
    vhosts: List[SiteSummary] = field(default_factory=list)


def read_database_name(wp_config: Path) -> Optional[str]:
    """
    Extract DB_NAME from a wp-config.php.

    Example:
        read_database_name(Path("/var/www/html/demo/wp-config.php"))  # "demo_db"
    """
    try:
        content = wp_config.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None

    match = DB_NAME_PATTERN.search(content)
    return match.group(1) if match else None


def format_bytes(size: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.5 KB'."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if value < 1024 or unit == "TB":
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


class SiteInspector:
    """
    Collects site and environment information from the adapters.

    Example:
        inspector = SiteInspector(settings, fs, web, db, cms)
        status = inspector.inspect("demo")
        for summary in inspector.list_sites():
            print(summary.name, summary.wordpress)
    """

    def __init__(self, settings: Settings, filesystem, webserver, database, cms):
        self.settings = settings
        self.filesystem = filesystem
        self.webserver = webserver
        self.database = database
        self.cms = cms

    def inspect(self, site_id: str) -> SiteStatus:
        site_dir = self.filesystem.site_path(site_id)
        status = SiteStatus(
            site_id=site_id,
            directory=site_dir,
            url=self.settings.site_url(site_id),
        )

        status.directory_exists = Path(site_dir).is_dir()
        if status.directory_exists:
            stats = self.filesystem.directory_stats(site_dir)
            status.size_bytes = stats.size_bytes
            status.files = stats.files
            status.directories = stats.directories

        status.vhost_config_exists = self.webserver.config_exists(site_id)
        status.enabled = self.webserver.is_enabled(site_id)
        status.hosts_entry = self.webserver.hosts_entry_exists(site_id)

        status.wordpress_installed = self.cms.is_installed(site_dir)
        if status.wordpress_installed:
            status.wordpress_version = self.cms.version(site_dir)
            status.home_url = self.cms.get_option(site_dir, "home")
            status.admin_email = self.cms.get_option(site_dir, "admin_email")
            status.title = self.cms.get_option(site_dir, "blogname")

        status.database = read_database_name(Path(site_dir) / "wp-config.php")
        if status.database:
            self._inspect_database(status)

        return status

    def _inspect_database(self, status: SiteStatus) -> None:
        try:
            status.database_exists = self.database.database_exists(status.database)
            if status.database_exists:
                status.table_count = self.database.table_count(status.database)
                status.database_size = self.database.database_size(status.database)
        except AdapterError as e:
            logger.warning("Could not inspect database '%s': %s", status.database, e)

    def list_sites(self) -> List[SiteSummary]:
        """Directories under the web root, sorted by name."""
        web_root = Path(self.settings.web_root)
        if not web_root.is_dir():
            logger.error("Web root directory does not exist: %s", web_root)
            return []

        enabled = set(self.webserver.enabled_sites())
        sites = []
        for entry in sorted(web_root.iterdir()):
            if not entry.is_dir():
                continue
            sites.append(SiteSummary(
                name=entry.name,
                wordpress=(entry / "wp-config.php").is_file(),
                enabled=entry.name in enabled,
            ))
        return sites

    def environment(self) -> EnvironmentStatus:
        system = platform.system()
        if system == "Linux":
            distro_name = distro.name(pretty=True) or distro.id() or "unknown"
            distro_version = distro.version()
        elif system == "Darwin":
            distro_name = "macos"
            distro_version = platform.mac_ver()[0]
        else:
            distro_name = "unknown"
            distro_version = ""

        env = EnvironmentStatus(
            system=system,
            distro=distro_name,
            distro_version=distro_version,
            kernel=platform.release(),
            arch=platform.machine(),
            apache_version=self.webserver.version(),
            mysql_version=self.database.server_version(),
            wp_cli_version=self.cms.cli_version(),
        )

        env.probes = [
            self.filesystem.probe(),
            self.webserver.probe(),
            self.database.probe(),
            self.cms.probe(),
        ]

        try:
            usage = shutil.disk_usage(self.settings.web_root)
            env.disk = DiskUsage(usage.total, usage.used, usage.free)
        except OSError as e:
            logger.warning("Unable to check disk space: %s", e)

        env.modules = self.webserver.loaded_modules()

        enabled = set(self.webserver.enabled_sites())
        env.vhosts = [
            SiteSummary(name=name, wordpress=False, enabled=name in enabled)
            for name in self.webserver.available_sites()
        ]
        return env
