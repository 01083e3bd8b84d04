"""
Decommissioner - removes a site from every resource, best effort.

Unlike provisioning there is nothing to compensate: every step runs even
when an earlier one failed, and a step that finds nothing to remove is
recorded as "absent" rather than failing. Running removal twice is safe,
and a run that removed nothing leaves the web server alone.
"""

from typing import Callable, List, Tuple

from wpsite.config import Settings
from wpsite.core.errors import (
    AdapterError,
    ConfigInvalidError,
    DecommissionError,
    NotConfirmedError,
    SiteError,
)
from wpsite.core.models import DecommissionRecord, DecommissionReport, StepOutcome
from wpsite.core.validation import validate_removal
from wpsite.logging import get_site_logger

logger = get_site_logger(__name__)

# (step name, resource, action returning True if something was removed)
RemovalStep = Tuple[str, str, Callable[[], bool]]


class Decommissioner:
    """
    Removal orchestrator.

    Example:
        decommissioner = Decommissioner(settings, fs, web, db)
        report = decommissioner.decommission("demo", "demo_db", "demo_user",
                                             confirmed=True)
        for record in report.records:
            print(record.step, record.outcome.value)
    """

    def __init__(self, settings: Settings, filesystem, webserver, database):
        self.settings = settings
        self.filesystem = filesystem
        self.webserver = webserver
        self.database = database

    def decommission(
        self,
        site_id: str,
        db_name: str,
        db_user: str,
        confirmed: bool = False,
    ) -> DecommissionReport:
        """
        Remove a site.

        Args:
            site_id: Site identifier
            db_name: Database to drop
            db_user: Database user to drop
            confirmed: Must be True; the operator's explicit consent

        Returns:
            DecommissionReport when every step removed or found nothing

        Raises:
            ValidationError: If an argument is malformed
            NotConfirmedError: If confirmed is False (nothing is touched)
            DecommissionError: If any step failed; carries the full report
        """
        validate_removal(site_id, db_name, db_user)

        if not confirmed:
            raise NotConfirmedError(site_id)

        report = DecommissionReport(site_id)
        steps = self.build_steps(site_id, db_name, db_user)
        total = len(steps) + 1

        for index, (name, resource, action) in enumerate(steps, start=1):
            logger.step(index, total, name)
            report.records.append(self._run(name, resource, action))

        logger.step(total, total, "reload web server")
        changed = any(r.outcome == StepOutcome.REMOVED for r in report.records)
        report.records.append(self._reload(changed))

        if not report.success:
            raise DecommissionError(report)

        logger.success(f"Site '{site_id}' removed")
        return report

    def build_steps(self, site_id: str, db_name: str, db_user: str) -> List[RemovalStep]:
        site_dir = self.filesystem.site_path(site_id)
        return [
            ("disable site", "webserver", lambda: self.webserver.disable(site_id)),
            ("delete vhost config", "webserver",
             lambda: self.webserver.delete_vhost_config(site_id)),
            ("delete site directory", "filesystem",
             lambda: self.filesystem.delete_dir(site_dir)),
            ("drop database", "database", lambda: self.database.drop_database(db_name)),
            ("drop database user", "database", lambda: self.database.drop_user(db_user)),
            ("remove hosts entry", "hosts",
             lambda: self.webserver.remove_hosts_entry(site_id)),
        ]

    def _run(self, name: str, resource: str, action: Callable[[], bool]) -> DecommissionRecord:
        try:
            removed = action()
        except Exception as e:
            error = e if isinstance(e, SiteError) else AdapterError(resource, name, str(e))
            logger.error("Failed to %s: %s", name, error)
            return DecommissionRecord(name, resource, StepOutcome.FAILED, str(error), error)

        if removed:
            return DecommissionRecord(name, resource, StepOutcome.REMOVED)

        logger.warning("Nothing to %s (already absent)", name)
        return DecommissionRecord(name, resource, StepOutcome.ABSENT, "already absent")

    def _reload(self, changed: bool) -> DecommissionRecord:
        name, resource = "reload web server", "webserver"

        if not changed:
            logger.info("Nothing was removed; not reloading")
            return DecommissionRecord(name, resource, StepOutcome.ABSENT, "no changes")

        try:
            passed, output = self.webserver.config_test()
            if not passed:
                raise ConfigInvalidError(output)
            self.webserver.reload()
        except ConfigInvalidError as e:
            logger.error("Skipping reload: %s", e)
            return DecommissionRecord(name, resource, StepOutcome.FAILED, str(e), e)
        except Exception as e:
            error = e if isinstance(e, SiteError) else AdapterError(resource, "reload", str(e))
            logger.error("Failed to reload web server: %s", error)
            return DecommissionRecord(name, resource, StepOutcome.FAILED, str(error), error)

        return DecommissionRecord(name, resource, StepOutcome.REMOVED, "reloaded")
