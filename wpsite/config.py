"""
Runtime configuration.

Settings is built once (by the CLI, or by tests) and handed to every
component at construction time. Nothing reads configuration from module
globals.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class Settings:
    """Paths, service names and database connection for one invocation."""

    # Filesystem layout (Debian/Ubuntu Apache defaults)
    web_root: str = "/var/www/html"
    sites_available_dir: str = "/etc/apache2/sites-available"
    sites_enabled_dir: str = "/etc/apache2/sites-enabled"
    apache_log_dir: str = "/var/log/apache2"
    hosts_file: str = "/etc/hosts"

    # Local DNS
    loopback_address: str = "127.0.0.1"
    domain_suffix: str = "localhost"

    # External commands
    web_service: str = "apache2"
    db_services: Tuple[str, ...] = ("mysql", "mariadb")
    apachectl: str = "apache2ctl"
    enable_site_cmd: str = "a2ensite"
    disable_site_cmd: str = "a2dissite"
    wp_cli: str = "wp"
    command_timeout: Optional[float] = 600.0

    # Database connection used for provisioning (root by default)
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_unix_socket: Optional[str] = "/var/run/mysqld/mysqld.sock"
    db_user_host: str = "localhost"

    # Free space required under the web root before creating a site
    min_free_bytes: int = 100 * 1024 * 1024

    # Ownership and permissions applied to the document root
    owner: Optional[str] = "www-data:www-data"
    dir_mode: int = 0o755
    file_mode: int = 0o644

    require_root: bool = True

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)

    def site_dir(self, site_id: str) -> str:
        """Document root for a site."""
        return str(Path(self.web_root) / site_id)

    def site_domain(self, site_id: str) -> str:
        """Local domain, e.g. demo.localhost."""
        return f"{site_id}.{self.domain_suffix}"

    def site_url(self, site_id: str) -> str:
        return f"http://{self.site_domain(site_id)}"

    def hosts_line(self, site_id: str) -> str:
        """The exact hosts-file line managed for a site."""
        return f"{self.loopback_address} {self.site_domain(site_id)}"

    def vhost_path(self, site_id: str) -> str:
        return str(Path(self.sites_available_dir) / f"{site_id}.conf")

    def vhost_link(self, site_id: str) -> str:
        return str(Path(self.sites_enabled_dir) / f"{site_id}.conf")
