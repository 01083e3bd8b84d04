"""
Integration tests for provisioning.

The real filesystem and web server adapters run against the fixture tree;
the database and WP-CLI are in-memory fakes. Every test compares the full
observable state before and after.
"""

import os
import signal
from pathlib import Path

import pytest

from wpsite.core.errors import (
    AdapterError,
    ConfigInvalidError,
    ConflictError,
    OperationInterrupted,
    UnavailableError,
    ValidationError,
)
from wpsite.core.models import StepOutcome
from wpsite.core.provision import Provisioner
from wpsite.render import render_htaccess

STEP_COUNT = 10


def fail_step(provisioner, monkeypatch, index, error=None):
    """Make step ``index`` (1-based) raise before touching anything."""
    build_steps = provisioner.build_steps

    def patched(request):
        steps = build_steps(request)

        def failing():
            raise error or AdapterError(steps[index - 1].resource, steps[index - 1].name,
                                        "injected failure")

        steps[index - 1].forward = failing
        return steps

    monkeypatch.setattr(provisioner, "build_steps", patched)


def interrupt_after_step(provisioner, monkeypatch, index):
    """Let step ``index`` (1-based) do its work, then interrupt it before it returns."""
    build_steps = provisioner.build_steps

    def patched(request):
        steps = build_steps(request)
        forward = steps[index - 1].forward

        def interrupted():
            forward()
            raise KeyboardInterrupt

        steps[index - 1].forward = interrupted
        return steps

    monkeypatch.setattr(provisioner, "build_steps", patched)


class TestSuccess:
    """A full provisioning run."""

    def test_demo_site(self, provisioner, inspector, demo_request, settings, cms):
        info = provisioner.provision(demo_request)

        assert info.url == "http://demo.localhost"
        assert info.directory == os.path.join(settings.web_root, "demo")
        assert info.admin_user == "demo_admin"
        assert info.database == "demo_db"

        hosts_lines = Path(settings.hosts_file).read_text().splitlines()
        assert hosts_lines.count("127.0.0.1 demo.localhost") == 1
        assert Path(info.directory, ".htaccess").read_text() == render_htaccess()

        status = inspector.inspect("demo")
        assert status.directory_exists
        assert status.enabled
        assert status.hosts_entry
        assert status.database == "demo_db"
        assert status.database_exists
        assert status.table_count >= 0

    def test_wordpress_configured(self, provisioner, demo_request, cms, settings):
        provisioner.provision(demo_request)
        site_dir = os.path.join(settings.web_root, "demo")

        assert cms.installs[0]["title"] == "demo"
        assert cms.installs[0]["admin_email"] == "admin@example.com"
        assert cms.get_option(site_dir, "home") == "http://demo.localhost"
        assert cms.get_option(site_dir, "siteurl") == "http://demo.localhost"
        assert "define( 'WP_DEBUG', false );" in cms.extra_php

    def test_vhost_enabled_and_reloaded(self, provisioner, demo_request, transport, settings):
        provisioner.provision(demo_request)

        assert Path(settings.sites_enabled_dir, "demo.conf").is_symlink()
        assert transport.ran("apache2ctl", "configtest")
        assert transport.ran("systemctl", "reload", "apache2")

    def test_steps_run_in_order(self, provisioner, demo_request):
        names = [step.name for step in provisioner.build_steps(demo_request)]

        assert names == [
            "create site directory",
            "create database",
            "create database user",
            "install WordPress",
            "write .htaccess",
            "write vhost config",
            "validate web server config",
            "enable site",
            "add hosts entry",
            "set permissions",
        ]

    def test_existing_empty_directory_is_reused(self, provisioner, demo_request, settings):
        os.mkdir(os.path.join(settings.web_root, "demo"))

        info = provisioner.provision(demo_request)

        assert Path(info.directory, "wp-config.php").is_file()


class TestAtomicity:
    """Any failing step leaves every resource as it was."""

    @pytest.mark.parametrize("index", range(1, STEP_COUNT + 1))
    def test_failure_at_step(self, provisioner, demo_request, take_snapshot,
                             monkeypatch, index):
        before = take_snapshot()
        fail_step(provisioner, monkeypatch, index)

        with pytest.raises(AdapterError) as exc_info:
            provisioner.provision(demo_request)

        assert take_snapshot() == before
        report = exc_info.value.compensation
        assert report is not None
        assert report.clean

    def test_failure_after_steps_undoes_in_reverse(self, provisioner, demo_request,
                                                   monkeypatch):
        fail_step(provisioner, monkeypatch, STEP_COUNT)

        with pytest.raises(AdapterError) as exc_info:
            provisioner.provision(demo_request)

        assert [r.step for r in exc_info.value.compensation.records] == [
            "add hosts entry",
            "enable site",
            "write vhost config",
            "create database user",
            "create database",
            "create site directory",
        ]

    def test_existing_empty_directory_is_kept_on_failure(self, provisioner, demo_request,
                                                         settings, monkeypatch):
        site_dir = os.path.join(settings.web_root, "demo")
        os.mkdir(site_dir)
        fail_step(provisioner, monkeypatch, 5)

        with pytest.raises(AdapterError):
            provisioner.provision(demo_request)

        assert os.path.isdir(site_dir)
        assert os.listdir(site_dir) == []

    def test_invalid_config(self, provisioner, demo_request, transport, take_snapshot):
        before = take_snapshot()
        transport.fail(["apache2ctl", "configtest"], "AH00526: Syntax error on line 2")

        with pytest.raises(ConfigInvalidError) as exc_info:
            provisioner.provision(demo_request)

        assert "Syntax error" in exc_info.value.diagnostic
        assert take_snapshot() == before

    def test_reload_failure(self, provisioner, demo_request, transport, take_snapshot):
        before = take_snapshot()
        transport.fail(["systemctl", "reload"], "Job for apache2.service failed")

        with pytest.raises(AdapterError) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.step == "reload"
        assert take_snapshot() == before

    def test_wordpress_download_failure(self, provisioner, demo_request, cms,
                                        take_snapshot, monkeypatch):
        before = take_snapshot()

        def broken_download(path):
            Path(path, "partial.zip").write_text("...")
            raise AdapterError("cms", "download", "Failed to download package")

        monkeypatch.setattr(cms, "download", broken_download)

        with pytest.raises(AdapterError):
            provisioner.provision(demo_request)

        assert take_snapshot() == before

    def test_unexpected_exception_is_wrapped(self, provisioner, demo_request,
                                             take_snapshot, monkeypatch):
        before = take_snapshot()
        fail_step(provisioner, monkeypatch, 6, error=PermissionError("denied"))

        with pytest.raises(AdapterError) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.resource == "webserver"
        assert take_snapshot() == before

    def test_compensation_failure_is_reported(self, provisioner, demo_request,
                                              database, monkeypatch):
        fail_step(provisioner, monkeypatch, 9)
        database.fail_on["drop user"] = AdapterError("database", "drop user", "gone away")

        with pytest.raises(AdapterError) as exc_info:
            provisioner.provision(demo_request)

        report = exc_info.value.compensation
        assert not report.clean
        assert [r.step for r in report.failures] == ["create database user"]
        # Later compensations still ran
        assert "demo_db" not in database.databases
        outcomes = {r.step: r.outcome for r in report.records}
        assert outcomes["create database"] == StepOutcome.UNDONE


class TestPreconditions:
    """Nothing is touched when preconditions fail."""

    def test_rejects_unvalidated_request(self, provisioner):
        with pytest.raises(ValidationError):
            provisioner.provision({"site_id": "demo"})

    def test_reserved_name(self, provisioner, take_snapshot):
        from wpsite.core.models import SiteRequest

        before = take_snapshot()
        with pytest.raises(ValidationError):
            provisioner.provision(SiteRequest.from_args(
                "admin", "demo_admin", "Adm1n-pass!", "admin@example.com",
                "demo_db", "demo_user", "Db-pass-42",
            ))
        assert take_snapshot() == before

    @pytest.mark.parametrize("setup,resource", [
        ("directory", "directory"),
        ("vhost", "vhost config"),
        ("hosts", "hosts entry"),
        ("database", "database"),
        ("user", "database user"),
    ])
    def test_conflicts(self, provisioner, demo_request, settings, database,
                       take_snapshot, setup, resource):
        if setup == "directory":
            site = Path(settings.web_root, "demo")
            site.mkdir()
            (site / "index.html").write_text("existing")
        elif setup == "vhost":
            Path(settings.sites_available_dir, "demo.conf").write_text("# existing\n")
        elif setup == "hosts":
            with open(settings.hosts_file, "a") as f:
                f.write("127.0.0.1 demo.localhost\n")
        elif setup == "database":
            database.databases["demo_db"] = 3
        elif setup == "user":
            database.users["demo_user"] = "demo_db"

        before = take_snapshot()
        with pytest.raises(ConflictError) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.resource == resource
        assert take_snapshot() == before

    def test_missing_dependencies(self, provisioner, demo_request, transport, cms,
                                  take_snapshot):
        before = take_snapshot()
        transport.respond(["apache2ctl", "-M"], "Loaded Modules:\n core_module (static)\n")
        cms.available = False

        with pytest.raises(UnavailableError) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.components == ["apache", "wp-cli"]
        assert take_snapshot() == before


class TestInterrupts:
    """Interrupted runs are compensated like failures."""

    @pytest.mark.parametrize("index", [1, 4, 8])
    def test_keyboard_interrupt(self, provisioner, demo_request, take_snapshot,
                                monkeypatch, index):
        before = take_snapshot()
        fail_step(provisioner, monkeypatch, index, error=KeyboardInterrupt())

        with pytest.raises(OperationInterrupted) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.compensation is not None
        assert take_snapshot() == before

    @pytest.mark.parametrize("index", range(1, STEP_COUNT + 1))
    def test_interrupt_after_step_effect(self, provisioner, demo_request, take_snapshot,
                                         monkeypatch, index):
        before = take_snapshot()
        interrupt_after_step(provisioner, monkeypatch, index)

        with pytest.raises(OperationInterrupted) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.compensation.clean
        assert take_snapshot() == before

    def test_interrupt_after_reusing_empty_directory(self, provisioner, demo_request,
                                                     settings, monkeypatch):
        site_dir = os.path.join(settings.web_root, "demo")
        os.mkdir(site_dir)
        interrupt_after_step(provisioner, monkeypatch, 1)

        with pytest.raises(OperationInterrupted):
            provisioner.provision(demo_request)

        assert os.listdir(site_dir) == []

    def test_signal_between_create_user_and_grant(self, settings, filesystem, webserver,
                                                  database, cms, demo_request,
                                                  take_snapshot, monkeypatch):
        provisioner = Provisioner(settings, filesystem, webserver, database, cms,
                                  handle_signals=True)
        before = take_snapshot()

        def create_user_then_signal(user, password, db_name):
            database.users[user] = None
            os.kill(os.getpid(), signal.SIGINT)
            for _ in range(1000):
                pass
            database.users[user] = db_name

        monkeypatch.setattr(database, "create_user_with_grant", create_user_then_signal)

        with pytest.raises(OperationInterrupted):
            provisioner.provision(demo_request)

        assert take_snapshot() == before

    def test_signal_after_hosts_entry_written(self, settings, filesystem, webserver,
                                              database, cms, demo_request,
                                              take_snapshot, monkeypatch):
        provisioner = Provisioner(settings, filesystem, webserver, database, cms,
                                  handle_signals=True)
        before = take_snapshot()
        add_hosts_entry = webserver.add_hosts_entry

        def add_then_signal(site_id):
            add_hosts_entry(site_id)
            os.kill(os.getpid(), signal.SIGTERM)
            for _ in range(1000):
                pass
            return True

        monkeypatch.setattr(webserver, "add_hosts_entry", add_then_signal)

        with pytest.raises(OperationInterrupted) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.signum == signal.SIGTERM
        assert take_snapshot() == before

    def test_signal_during_step(self, settings, filesystem, webserver, database, cms,
                                demo_request, take_snapshot, monkeypatch):
        provisioner = Provisioner(settings, filesystem, webserver, database, cms,
                                  handle_signals=True)
        before = take_snapshot()
        handler_before = signal.getsignal(signal.SIGTERM)

        def slow_install(*args, **kwargs):
            os.kill(os.getpid(), signal.SIGTERM)
            for _ in range(1000):
                pass

        monkeypatch.setattr(cms, "install", slow_install)

        with pytest.raises(OperationInterrupted) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.signum == signal.SIGTERM
        assert take_snapshot() == before
        assert signal.getsignal(signal.SIGTERM) == handler_before

    def test_signal_during_compensation_is_ignored(self, settings, filesystem, webserver,
                                                   database, cms, demo_request,
                                                   take_snapshot, monkeypatch):
        provisioner = Provisioner(settings, filesystem, webserver, database, cms,
                                  handle_signals=True)
        before = take_snapshot()
        fail_step(provisioner, monkeypatch, 4)
        drop_user = database.drop_user

        def interrupted_drop_user(name):
            os.kill(os.getpid(), signal.SIGINT)
            for _ in range(1000):
                pass
            return drop_user(name)

        monkeypatch.setattr(database, "drop_user", interrupted_drop_user)

        with pytest.raises(AdapterError) as exc_info:
            provisioner.provision(demo_request)

        assert exc_info.value.compensation.clean
        assert take_snapshot() == before

    def test_handlers_restored_after_success(self, settings, filesystem, webserver,
                                             database, cms, demo_request):
        provisioner = Provisioner(settings, filesystem, webserver, database, cms,
                                  handle_signals=True)
        before = signal.getsignal(signal.SIGINT)

        provisioner.provision(demo_request)

        assert signal.getsignal(signal.SIGINT) == before
