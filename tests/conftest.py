"""
Shared fixtures.

Every test runs against a private directory tree under tmp_path: web root,
Apache sites-available/sites-enabled, log dir and hosts file. External
commands go through FakeTransport, which simulates a2ensite/a2dissite
symlinks, apache2ctl and systemctl. MySQL and WP-CLI are replaced by
in-memory fakes with the same interface as the real adapters.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from wpsite.adapters import FilesystemAdapter, WebServerAdapter
from wpsite.config import Settings
from wpsite.core.errors import AdapterError
from wpsite.core.models import HealthStatus, SiteRequest
from wpsite.core.provision import Provisioner
from wpsite.core.decommission import Decommissioner
from wpsite.report import SiteInspector
from wpsite.transport import Transport

HOSTS_CONTENT = (
    "127.0.0.1\tlocalhost\n"
    "::1\tip6-localhost ip6-loopback\n"
    "# 127.0.0.1 demo.localhost\n"
    "127.0.0.1 demo.localhost.example\n"
    "192.168.1.10 fileserver\n"
)

APACHE_MODULES = (
    "Loaded Modules:\n"
    " core_module (static)\n"
    " so_module (static)\n"
    " rewrite_module (shared)\n"
    " php_module (shared)\n"
)


class FakeTransport(Transport):
    """
    Scripted stand-in for the local command runner.

    a2ensite/a2dissite really create/remove the sites-enabled symlink so
    adapters observe consistent state. Any command can be forced to fail
    via ``fail(prefix, output, code)``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.commands: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.failures: Dict[Tuple[str, ...], Tuple[str, int]] = {}
        self.missing: set = set()
        self.responses: Dict[Tuple[str, ...], str] = {}
        self.running = True

    def fail(self, prefix: Sequence[str], output: str = "failed", code: int = 1) -> None:
        self.failures[tuple(prefix)] = (output, code)

    def respond(self, prefix: Sequence[str], output: str) -> None:
        self.responses[tuple(prefix)] = output

    def ran(self, *prefix: str) -> bool:
        return any(tuple(cmd[:len(prefix)]) == prefix for cmd in self.commands)

    def run_command(self, args, input_text=None, timeout=None):
        args = [str(a) for a in args]
        self.commands.append(args)
        self.inputs.append(input_text)

        for prefix, result in self.failures.items():
            if tuple(args[:len(prefix)]) == prefix:
                return result

        if args[0] in self.missing:
            return f"{args[0]}: command not found", 127

        for prefix, output in self.responses.items():
            if tuple(args[:len(prefix)]) == prefix:
                return output, 0

        s = self.settings
        if args[0] == s.enable_site_cmd:
            link = Path(s.sites_enabled_dir) / args[1]
            target = Path(s.sites_available_dir) / args[1]
            if not target.exists():
                return f"ERROR: Site {args[1]} does not exist!", 1
            if not link.is_symlink():
                link.symlink_to(target)
            return f"Enabling site {args[1]}.", 0

        if args[0] == s.disable_site_cmd:
            link = Path(s.sites_enabled_dir) / args[1]
            if link.is_symlink() or link.exists():
                link.unlink()
                return f"Site {args[1]} disabled.", 0
            return f"Site {args[1]} already disabled", 0

        if args[0] == s.apachectl and args[1:] == ["configtest"]:
            return "Syntax OK", 0
        if args[0] == s.apachectl and args[1:] == ["-M"]:
            return APACHE_MODULES, 0
        if args[0] == s.apachectl and args[1:] == ["-v"]:
            return "Server version: Apache/2.4.58 (Ubuntu)\n", 0

        if args[:2] == ["systemctl", "is-active"]:
            return "", 0 if self.running else 3
        if args[:2] == ["systemctl", "reload"]:
            return "", 0

        return "", 0

    def which(self, name):
        if name in self.missing:
            return None
        return f"/usr/bin/{name}"


class FakeDatabase:
    """In-memory MySQL with the DatabaseAdapter interface."""

    def __init__(self):
        self.databases: Dict[str, int] = {}
        self.users: Dict[str, Optional[str]] = {}
        self.available = True
        self.fail_on: Dict[str, AdapterError] = {}

    def _check(self, step: str) -> None:
        if step in self.fail_on:
            raise self.fail_on[step]

    def probe(self) -> HealthStatus:
        if not self.available:
            return HealthStatus("mysql", False, ["Can't connect to MySQL server"])
        return HealthStatus("mysql", True)

    def test_connection(self) -> bool:
        return self.available

    def server_version(self) -> str:
        return "8.0.36"

    def database_exists(self, name: str) -> bool:
        self._check("check database")
        return name in self.databases

    def create_database(self, name: str) -> None:
        self._check("create database")
        if name in self.databases:
            raise AdapterError("database", "create database", "database exists")
        self.databases[name] = 0

    def drop_database(self, name: str) -> bool:
        self._check("drop database")
        return self.databases.pop(name, None) is not None

    def table_count(self, name: str) -> int:
        return self.databases.get(name, 0)

    def database_size(self, name: str) -> int:
        return self.databases.get(name, 0) * 16384

    def user_exists(self, name: str) -> bool:
        self._check("check user")
        return name in self.users

    def create_user_with_grant(self, user: str, password: str, database: str) -> None:
        self._check("create user")
        if user in self.users:
            raise AdapterError("database", "create user", "user exists")
        self.users[user] = database

    def drop_user(self, name: str) -> bool:
        self._check("drop user")
        if name not in self.users:
            return False
        del self.users[name]
        return True


class FakeCms:
    """WP-CLI stand-in that writes the files a real install would leave."""

    def __init__(self, database: FakeDatabase):
        self.database = database
        self.options: Dict[str, Dict[str, str]] = {}
        self.installs: List[dict] = []
        self.extra_php: Optional[str] = None
        self.available = True

    def probe(self) -> HealthStatus:
        if not self.available:
            return HealthStatus("wp-cli", False, ["wp not found in PATH"])
        return HealthStatus("wp-cli", True)

    def cli_version(self) -> str:
        return "WP-CLI 2.10.0"

    def download(self, path: str) -> None:
        Path(path, "wp-load.php").write_text("<?php\n")
        Path(path, "index.php").write_text("<?php\n")
        Path(path, "wp-content").mkdir(exist_ok=True)

    def write_config(self, path, db_name, db_user, db_password, extra_directives=""):
        self.extra_php = extra_directives
        Path(path, "wp-config.php").write_text(
            "<?php\n"
            f"define( 'DB_NAME', '{db_name}' );\n"
            f"define( 'DB_USER', '{db_user}' );\n"
            f"define( 'DB_PASSWORD', '{db_password}' );\n"
            f"{extra_directives}"
        )

    def install(self, path, url, title, admin_user, admin_password, admin_email):
        db_name = self._db_name(path)
        if db_name in self.database.databases:
            self.database.databases[db_name] = 12
        self.installs.append({"path": path, "url": url, "title": title,
                              "admin_user": admin_user, "admin_email": admin_email})
        self.options[path] = {"blogname": title, "admin_email": admin_email}

    def set_option(self, path, key, value):
        self.options.setdefault(path, {})[key] = value

    def get_option(self, path, key):
        return self.options.get(path, {}).get(key)

    def version(self, path):
        return "6.5.2" if self.is_installed(path) else None

    def is_installed(self, path):
        return Path(path, "wp-config.php").is_file() and Path(path, "wp-load.php").is_file()

    def _db_name(self, path):
        for line in Path(path, "wp-config.php").read_text().splitlines():
            if "DB_NAME" in line:
                return line.split("'")[3]
        return None


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a private directory tree."""
    web_root = tmp_path / "www"
    available = tmp_path / "apache2" / "sites-available"
    enabled = tmp_path / "apache2" / "sites-enabled"
    log_dir = tmp_path / "log"
    for path in (web_root, available, enabled, log_dir):
        path.mkdir(parents=True)

    hosts = tmp_path / "hosts"
    hosts.write_text(HOSTS_CONTENT)
    os.chmod(hosts, 0o644)

    return Settings(
        web_root=str(web_root),
        sites_available_dir=str(available),
        sites_enabled_dir=str(enabled),
        apache_log_dir=str(log_dir),
        hosts_file=str(hosts),
        db_unix_socket=None,
        owner=None,
        require_root=False,
        min_free_bytes=0,
    )


@pytest.fixture
def transport(settings):
    return FakeTransport(settings)


@pytest.fixture
def filesystem(settings):
    return FilesystemAdapter(settings)


@pytest.fixture
def webserver(settings, transport):
    return WebServerAdapter(settings, transport)


@pytest.fixture
def database():
    return FakeDatabase()


@pytest.fixture
def cms(database):
    return FakeCms(database)


@pytest.fixture
def provisioner(settings, filesystem, webserver, database, cms):
    return Provisioner(settings, filesystem, webserver, database, cms, handle_signals=False)


@pytest.fixture
def decommissioner(settings, filesystem, webserver, database):
    return Decommissioner(settings, filesystem, webserver, database)


@pytest.fixture
def inspector(settings, filesystem, webserver, database, cms):
    return SiteInspector(settings, filesystem, webserver, database, cms)


@pytest.fixture
def demo_request():
    return SiteRequest.from_args(
        "demo", "demo_admin", "Adm1n-pass!", "admin@example.com",
        "demo_db", "demo_user", "Db-pass-42",
    )


def snapshot(settings: Settings, database: FakeDatabase) -> dict:
    """Observable state of every resource, for before/after comparisons."""
    return {
        "web_root": sorted(os.listdir(settings.web_root)),
        "available": sorted(os.listdir(settings.sites_available_dir)),
        "enabled": sorted(os.listdir(settings.sites_enabled_dir)),
        "hosts": Path(settings.hosts_file).read_bytes(),
        "databases": dict(database.databases),
        "users": dict(database.users),
    }


@pytest.fixture
def take_snapshot(settings, database):
    return lambda: snapshot(settings, database)
