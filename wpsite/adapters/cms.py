"""
CMS adapter - WordPress via WP-CLI.

Every call runs `wp <subcommand> --path=<site dir> --allow-root` through the
transport as an argument vector. Passwords are passed as single arguments
and masked in debug logs.
"""

from pathlib import Path
from typing import List, Optional

from wpsite.config import Settings
from wpsite.core.errors import AdapterError
from wpsite.core.models import HealthStatus
from wpsite.logging import get_site_logger
from wpsite.transport import Transport

logger = get_site_logger(__name__)

RESOURCE = "cms"


class CmsAdapter:
    """
    WordPress installation steps.

    Examples:
        cms = CmsAdapter(settings, LocalTransport())
        cms.download("/var/www/html/demo")
        cms.write_config("/var/www/html/demo", "demo_db", "demo_user", "pw", extra)
        cms.install("/var/www/html/demo", "http://demo.localhost", "demo",
                    "demo_admin", "pw", "me@example.com")
        cms.set_option("/var/www/html/demo", "home", "http://demo.localhost")
    """

    def __init__(self, settings: Settings, transport: Transport):
        self.settings = settings
        self.transport = transport

    def _wp(self, step: str, path: Optional[str], *args: str, input_text: Optional[str] = None) -> str:
        command: List[str] = [self.settings.wp_cli, *args]
        if path is not None:
            command.append(f"--path={path}")
        command.append("--allow-root")

        output, code = self.transport.run_command(command, input_text=input_text)
        if code != 0:
            raise AdapterError(RESOURCE, step, output)
        return output

    def download(self, path: str) -> None:
        logger.info("Downloading WordPress into %s", path)
        self._wp("download", path, "core", "download")

    def write_config(
        self,
        path: str,
        db_name: str,
        db_user: str,
        db_password: str,
        extra_directives: str = "",
    ) -> None:
        """Create wp-config.php; extra_directives is appended verbatim."""
        args = [
            "config", "create",
            f"--dbname={db_name}",
            f"--dbuser={db_user}",
            f"--dbpass={db_password}",
        ]
        if extra_directives:
            args.append("--extra-php")

        logger.info("Creating WordPress configuration")
        self._wp("configure", path, *args, input_text=extra_directives or None)

    def install(
        self,
        path: str,
        url: str,
        title: str,
        admin_user: str,
        admin_password: str,
        admin_email: str,
    ) -> None:
        logger.info("Installing WordPress at %s", url)
        self._wp(
            "install", path,
            "core", "install",
            f"--url={url}",
            f"--title={title}",
            f"--admin_user={admin_user}",
            f"--admin_password={admin_password}",
            f"--admin_email={admin_email}",
            "--skip-email",
        )

    def set_option(self, path: str, key: str, value: str) -> None:
        self._wp(f"set option {key}", path, "option", "update", key, value)

    def get_option(self, path: str, key: str) -> Optional[str]:
        """Read an option; None if WP-CLI cannot answer."""
        try:
            output = self._wp(f"get option {key}", path, "option", "get", key)
        except AdapterError:
            return None
        return output.strip() or None

    def version(self, path: str) -> Optional[str]:
        try:
            output = self._wp("core version", path, "core", "version")
        except AdapterError:
            return None
        return output.strip() or None

    def is_installed(self, path: str) -> bool:
        """Config and core files are both present."""
        site = Path(path)
        return (site / "wp-config.php").is_file() and (site / "wp-load.php").is_file()

    def cli_version(self) -> str:
        try:
            output = self._wp("version", None, "--version")
        except AdapterError:
            return "Not available"
        return output.strip()

    def probe(self) -> HealthStatus:
        if self.transport.which(self.settings.wp_cli) is None:
            return HealthStatus("wp-cli", False, [f"{self.settings.wp_cli} not found in PATH"])

        try:
            self._wp("version", None, "--version")
        except AdapterError as e:
            return HealthStatus("wp-cli", False, [e.diagnostic or "not callable"])
        return HealthStatus("wp-cli", True)
