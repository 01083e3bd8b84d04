"""
Provisioner - creates a site as an all-or-nothing sequence of steps.

The provisioner:
1. Re-checks preconditions (no conflicts, dependencies reachable)
2. Runs the fixed step sequence inside a Transaction
3. On any failure or interrupt, compensates completed steps in reverse
4. Returns SiteInfo on success, or re-raises the original error with the
   compensation report attached
"""

from typing import Callable, List, Optional

from wpsite.config import Settings
from wpsite.core.errors import ConfigInvalidError, SiteError, ValidationError
from wpsite.core.interrupt import InterruptGuard
from wpsite.core.models import SiteInfo, SiteRequest
from wpsite.core.preconditions import PreconditionChecker
from wpsite.core.step import ProvisioningStep, Transaction
from wpsite.logging import get_site_logger
from wpsite.render import render_htaccess, render_wp_extra_php

logger = get_site_logger(__name__)

HTACCESS_MODE = 0o644


class Provisioner:
    """
    Provisioning orchestrator.

    Example:
        provisioner = Provisioner(settings, fs, web, db, cms)
        info = provisioner.provision(SiteRequest.from_args(...))
        print(info.url)
    """

    def __init__(
        self,
        settings: Settings,
        filesystem,
        webserver,
        database,
        cms,
        checker: Optional[PreconditionChecker] = None,
        handle_signals: bool = True,
        guard_factory: Callable[..., InterruptGuard] = InterruptGuard,
    ):
        """
        Args:
            settings: Runtime configuration
            filesystem: FilesystemAdapter
            webserver: WebServerAdapter
            database: DatabaseAdapter
            cms: CmsAdapter
            checker: Precondition checker (built from the adapters if None)
            handle_signals: Install SIGINT/SIGTERM handlers while in flight
            guard_factory: Builds the interrupt guard for each run
        """
        self.settings = settings
        self.filesystem = filesystem
        self.webserver = webserver
        self.database = database
        self.cms = cms
        self.checker = checker or PreconditionChecker(filesystem, webserver, database, cms)
        self.handle_signals = handle_signals
        self.guard_factory = guard_factory

    def provision(self, request: SiteRequest) -> SiteInfo:
        """
        Provision a site.

        Raises:
            ValidationError: request is not a SiteRequest
            ConflictError: site already exists on some resource
            UnavailableError: backing services unreachable
            AdapterError, ConfigInvalidError, OperationInterrupted: a step
                failed; completed steps were compensated and the report is
                on ``error.compensation``
        """
        if not isinstance(request, SiteRequest):
            raise ValidationError(["request has not been validated"])

        site_id = request.site_id
        self.checker.check_available(site_id)
        self.checker.check_dependencies()
        self.checker.check_database_available(request.database.name, request.database.user)

        steps = self.build_steps(request)
        transaction = Transaction(site_id)

        with self.guard_factory(enabled=self.handle_signals) as guard:
            try:
                for index, step in enumerate(steps, start=1):
                    logger.step(index, len(steps), step.name)
                    transaction.run(step)
            except SiteError as e:
                logger.error("Step failed: %s", e)
                logger.warning("Cleaning up partial installation of '%s'", site_id)
                with guard.shielded():
                    e.compensation = transaction.compensate_all()
                raise
            guard.disarm()
            transaction.close()

        info = SiteInfo(
            site_id=site_id,
            directory=self.filesystem.site_path(site_id),
            url=self.settings.site_url(site_id),
            admin_user=request.admin.username,
            database=request.database.name,
            database_user=request.database.user,
            vhost_config=self.webserver.config_path(site_id),
        )
        logger.success(f"WordPress site created successfully: '{site_id}'")
        return info

    def build_steps(self, request: SiteRequest) -> List[ProvisioningStep]:
        """The fixed step sequence with paired compensations."""
        site_id = request.site_id
        site_dir = self.filesystem.site_path(site_id)
        db = request.database
        settings = self.settings
        # Decided before the run, so an interrupted mkdir is undone correctly
        preexisting = self.filesystem.exists(site_dir)

        return [
            ProvisioningStep(
                "create site directory", "filesystem",
                forward=lambda: self.filesystem.create_dir(site_dir),
                compensate=lambda _: self._remove_site_dir(site_dir, preexisting),
            ),
            ProvisioningStep(
                "create database", "database",
                forward=lambda: self.database.create_database(db.name),
                compensate=lambda _: self.database.drop_database(db.name),
            ),
            ProvisioningStep(
                "create database user", "database",
                forward=lambda: self.database.create_user_with_grant(db.user, db.password, db.name),
                compensate=lambda _: self.database.drop_user(db.user),
            ),
            ProvisioningStep(
                "install WordPress", "cms",
                forward=lambda: self._install_wordpress(request, site_dir),
            ),
            ProvisioningStep(
                "write .htaccess", "filesystem",
                forward=lambda: self.filesystem.write_file(
                    f"{site_dir}/.htaccess", render_htaccess(), mode=HTACCESS_MODE
                ),
            ),
            ProvisioningStep(
                "write vhost config", "webserver",
                forward=lambda: self.webserver.write_vhost_config(
                    site_id, site_dir, settings.apache_log_dir
                ),
                compensate=lambda _: self._remove_vhost_config(site_id),
            ),
            ProvisioningStep(
                "validate web server config", "webserver",
                forward=self._validate_config,
            ),
            ProvisioningStep(
                "enable site", "webserver",
                forward=lambda: self.webserver.enable_and_reload(site_id),
                compensate=lambda _: self.webserver.disable_and_reload(site_id),
            ),
            ProvisioningStep(
                "add hosts entry", "hosts",
                forward=lambda: self.webserver.add_hosts_entry(site_id),
                compensate=lambda _: self.webserver.remove_hosts_entry(site_id),
            ),
            ProvisioningStep(
                "set permissions", "filesystem",
                forward=lambda: self.filesystem.set_owner_and_mode(
                    site_dir, settings.owner, settings.dir_mode, settings.file_mode
                ),
            ),
        ]

    def _install_wordpress(self, request: SiteRequest, site_dir: str) -> None:
        url = self.settings.site_url(request.site_id)
        db = request.database
        admin = request.admin

        self.cms.download(site_dir)
        self.cms.write_config(site_dir, db.name, db.user, db.password, render_wp_extra_php())
        self.cms.install(
            site_dir, url, request.site_id,
            admin.username, admin.password, admin.email,
        )
        self.cms.set_option(site_dir, "home", url)
        self.cms.set_option(site_dir, "siteurl", url)

    def _validate_config(self) -> None:
        passed, output = self.webserver.config_test()
        if not passed:
            raise ConfigInvalidError(output)

    def _remove_site_dir(self, site_dir: str, preexisting: bool) -> None:
        # A directory that existed (empty) before the run is emptied, not removed
        if preexisting:
            self.filesystem.clear_dir(site_dir)
        else:
            self.filesystem.delete_dir(site_dir)

    def _remove_vhost_config(self, site_id: str) -> None:
        self.webserver.disable(site_id)
        self.webserver.delete_vhost_config(site_id)
