"""
Web server adapter - Apache virtual hosts and local DNS.

Supports Debian-style Apache layouts:
- sites-available/<site>.conf holds the vhost
- a2ensite/a2dissite manage the sites-enabled symlink
- systemctl reloads the service, apache2ctl tests the config

The hosts-file entry for the site's .localhost domain is managed here too,
since it is what makes the vhost reachable.
"""

from pathlib import Path
from typing import List, Tuple

from wpsite.adapters.hosts import HostsFile
from wpsite.config import Settings
from wpsite.core.errors import AdapterError
from wpsite.core.models import HealthStatus
from wpsite.logging import get_site_logger
from wpsite.render import render_vhost
from wpsite.transport import Transport

logger = get_site_logger(__name__)

RESOURCE = "webserver"


class WebServerAdapter:
    """
    Apache virtual host management.

    Examples:
        web = WebServerAdapter(settings, LocalTransport())
        web.write_vhost_config("demo", "/var/www/html/demo", "/var/log/apache2")
        if web.validate_config():
            web.enable_and_reload("demo")
        web.add_hosts_entry("demo")
    """

    def __init__(self, settings: Settings, transport: Transport):
        self.settings = settings
        self.transport = transport
        self.hosts = HostsFile(settings.hosts_file)

    # Virtual host config

    def config_path(self, site_id: str) -> str:
        return self.settings.vhost_path(site_id)

    def config_exists(self, site_id: str) -> bool:
        return Path(self.config_path(site_id)).is_file()

    def write_vhost_config(self, site_id: str, doc_root: str, log_dir: str) -> str:
        """
        Render and write the vhost config.

        Returns:
            Path of the written config file

        Raises:
            AdapterError: If the file cannot be written
        """
        path = Path(self.config_path(site_id))
        content = render_vhost(
            site_id=site_id,
            server_name=self.settings.site_domain(site_id),
            document_root=doc_root,
            log_dir=log_dir,
        )

        try:
            path.write_text(content, encoding="utf-8")
            path.chmod(0o644)
        except OSError as e:
            raise AdapterError(RESOURCE, "write vhost config", f"{path}: {e}") from e

        logger.action("create", str(path))
        return str(path)

    def delete_vhost_config(self, site_id: str) -> bool:
        """
        Remove the vhost config file.

        Returns:
            True if a file was removed, False if it was absent
        """
        path = Path(self.config_path(site_id))
        if not path.exists():
            return False

        try:
            path.unlink()
        except OSError as e:
            raise AdapterError(RESOURCE, "delete vhost config", f"{path}: {e}") from e

        logger.action("delete", str(path))
        return True

    def config_test(self) -> Tuple[bool, str]:
        """
        Run apache2ctl configtest.

        Returns:
            Tuple of (passed, output)
        """
        output, code = self.transport.run_command([self.settings.apachectl, "configtest"])
        if code != 0:
            logger.error("Apache configuration test failed:\n%s", output.strip())
        return code == 0, output

    def validate_config(self) -> bool:
        passed, _ = self.config_test()
        return passed

    # Site activation

    def is_enabled(self, site_id: str) -> bool:
        link = Path(self.settings.vhost_link(site_id))
        return link.is_symlink() or link.exists()

    def enable(self, site_id: str) -> None:
        """
        Enable the site via a2ensite.

        Raises:
            AdapterError: If a2ensite fails
        """
        if self.is_enabled(site_id):
            logger.warning("Site '%s' is already enabled", site_id)
            return

        output, code = self.transport.run_command(
            [self.settings.enable_site_cmd, f"{site_id}.conf"]
        )
        if code != 0:
            raise AdapterError(RESOURCE, "enable site", output)
        logger.action("create", self.settings.vhost_link(site_id), "enabled")

    def disable(self, site_id: str) -> bool:
        """
        Disable the site via a2dissite.

        Returns:
            True if the site was enabled and is now disabled

        Raises:
            AdapterError: If a2dissite fails
        """
        if not self.is_enabled(site_id):
            return False

        output, code = self.transport.run_command(
            [self.settings.disable_site_cmd, f"{site_id}.conf"]
        )
        if code != 0:
            raise AdapterError(RESOURCE, "disable site", output)
        logger.action("delete", self.settings.vhost_link(site_id), "disabled")
        return True

    def reload(self) -> None:
        """
        Reload Apache.

        Raises:
            AdapterError: If systemctl reload fails
        """
        output, code = self.transport.run_command(
            ["systemctl", "reload", self.settings.web_service]
        )
        if code != 0:
            raise AdapterError(RESOURCE, "reload", output)
        logger.info("Reloaded %s", self.settings.web_service)

    def enable_and_reload(self, site_id: str) -> None:
        """
        Enable the site and reload Apache as one unit.

        If the reload fails the site is disabled again before the error is
        raised, so callers never see an enabled-but-not-loaded site.
        """
        self.enable(site_id)
        try:
            self.reload()
        except AdapterError:
            try:
                self.disable(site_id)
            except AdapterError as undo_error:
                logger.error("Could not disable '%s' after failed reload: %s",
                             site_id, undo_error)
            raise

    def disable_and_reload(self, site_id: str) -> None:
        """Undo enable_and_reload()."""
        if self.disable(site_id):
            self.reload()

    # Hosts file

    def hosts_entry_exists(self, site_id: str) -> bool:
        return self.hosts.contains(self.settings.hosts_line(site_id))

    def add_hosts_entry(self, site_id: str) -> bool:
        return self.hosts.add(self.settings.hosts_line(site_id))

    def remove_hosts_entry(self, site_id: str) -> bool:
        return self.hosts.remove(self.settings.hosts_line(site_id))

    # Inspection

    def is_running(self) -> bool:
        _, code = self.transport.run_command(
            ["systemctl", "is-active", "--quiet", self.settings.web_service]
        )
        return code == 0

    def loaded_modules(self) -> List[str]:
        """Module names reported by apache2ctl -M, e.g. 'rewrite_module'."""
        output, code = self.transport.run_command([self.settings.apachectl, "-M"])
        if code != 0:
            return []

        modules = []
        for line in output.splitlines():
            parts = line.split()
            if parts and parts[0].endswith("_module"):
                modules.append(parts[0])
        return modules

    def available_sites(self) -> List[str]:
        return _conf_names(self.settings.sites_available_dir)

    def enabled_sites(self) -> List[str]:
        return _conf_names(self.settings.sites_enabled_dir)

    def version(self) -> str:
        output, code = self.transport.run_command([self.settings.apachectl, "-v"])
        if code != 0 or not output.strip():
            return "Not available"
        return output.strip().splitlines()[0]

    def probe(self) -> HealthStatus:
        """Apache must be running with mod_rewrite loaded."""
        reasons = []
        if self.transport.which(self.settings.apachectl) is None:
            reasons.append(f"{self.settings.apachectl} not found")
        else:
            if not self.is_running():
                reasons.append(f"{self.settings.web_service} service is not running")
            if "rewrite_module" not in self.loaded_modules():
                reasons.append("mod_rewrite is not enabled")

        for command in (self.settings.enable_site_cmd, self.settings.disable_site_cmd):
            if self.transport.which(command) is None:
                reasons.append(f"{command} not found")

        return HealthStatus("apache", not reasons, reasons)


def _conf_names(directory: str) -> List[str]:
    path = Path(directory)
    if not path.is_dir():
        return []
    return sorted(entry.stem for entry in path.glob("*.conf"))
