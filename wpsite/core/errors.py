"""
Error taxonomy.

Everything the orchestrators raise derives from SiteError. Adapters raise
AdapterError for any failed external call; the orchestrators decide whether
compensation is needed.
"""

import signal
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from wpsite.core.models import CompensationReport, DecommissionReport, HealthStatus


class SiteError(Exception):
    """Base class for all wpsite errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        # Filled in by the provisioner when a rollback ran
        self.compensation: Optional["CompensationReport"] = None


class ValidationError(SiteError):
    """Malformed input. Raised before any resource is touched."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        count = len(self.problems)
        summary = f"Validation failed with {count} error(s)"
        if self.problems:
            summary += ": " + "; ".join(self.problems)
        super().__init__(summary)


class ConflictError(SiteError):
    """The target site already exists on some resource."""

    def __init__(self, resource: str, detail: str):
        self.resource = resource
        self.detail = detail
        super().__init__(f"{resource}: {detail}")


# Name used by callers that think in terms of "site already exists"
AlreadyExistsError = ConflictError


class UnavailableError(SiteError):
    """One or more backing services or tools are not reachable."""

    def __init__(self, statuses: List["HealthStatus"]):
        self.statuses = list(statuses)
        parts = []
        for status in self.statuses:
            reason = ", ".join(status.reasons) if status.reasons else "unavailable"
            parts.append(f"{status.component} ({reason})")
        super().__init__("Missing dependencies: " + "; ".join(parts))

    @property
    def components(self) -> List[str]:
        return [status.component for status in self.statuses]


class AdapterError(SiteError):
    """An individual resource operation failed."""

    def __init__(self, resource: str, step: str, diagnostic: str = ""):
        self.resource = resource
        self.step = step
        self.diagnostic = diagnostic.strip()
        message = f"{resource} failed during '{step}'"
        if self.diagnostic:
            message += f": {self.diagnostic}"
        super().__init__(message)


class ConfigInvalidError(SiteError):
    """The rendered web-server configuration failed syntax validation."""

    def __init__(self, diagnostic: str = ""):
        self.resource = "webserver"
        self.step = "validate config"
        self.diagnostic = diagnostic.strip()
        message = "Apache configuration test failed"
        if self.diagnostic:
            message += f": {self.diagnostic}"
        super().__init__(message)


class OperationInterrupted(SiteError):
    """The operator interrupted a provisioning run."""

    def __init__(self, signum: int = signal.SIGINT):
        self.signum = signum
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        super().__init__(f"Interrupted by {name}")


class CompensationError(SiteError):
    """A rollback step failed. Recorded in reports, never raised to callers."""

    def __init__(self, step: str, resource: str, cause: BaseException):
        self.step = step
        self.resource = resource
        self.cause = cause
        super().__init__(f"Could not undo '{step}' on {resource}: {cause}")


class DecommissionError(SiteError):
    """One or more removal steps failed."""

    def __init__(self, report: Optional["DecommissionReport"] = None, message: str = ""):
        self.report = report
        if not message and report is not None:
            failed = ", ".join(record.step for record in report.failed)
            message = f"Removal of '{report.site_id}' incomplete; failed steps: {failed}"
        super().__init__(message or "Removal failed")


class NotConfirmedError(DecommissionError):
    """A destructive operation was declined."""

    def __init__(self, site_id: str):
        self.site_id = site_id
        super().__init__(message=f"Removal of '{site_id}' was not confirmed")
