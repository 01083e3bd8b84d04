"""
Value objects passed between the CLI, orchestrators and adapters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from wpsite.core.errors import ValidationError
from wpsite.core.validation import check_site_parameters, sanitize


@dataclass(frozen=True)
class AdminCredentials:
    """WordPress administrator account."""
    username: str
    password: str = field(repr=False)
    email: str


@dataclass(frozen=True)
class DatabaseCredentials:
    """Database and the user WordPress connects as."""
    name: str
    user: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class SiteRequest:
    """
    A validated request to provision one site.

    Construction runs validation, so holding a SiteRequest means holding
    valid input.

    Example:
        request = SiteRequest.from_args(
            "demo", "demo_admin", "s3cret!", "me@example.com",
            "demo_db", "demo_user", "dbpass",
        )
    """
    site_id: str
    admin: AdminCredentials
    database: DatabaseCredentials

    def __post_init__(self):
        problems = check_site_parameters(
            self.site_id,
            self.admin.username,
            self.admin.password,
            self.admin.email,
            self.database.name,
            self.database.user,
            self.database.password,
        )
        if problems:
            raise ValidationError(problems)

    @classmethod
    def from_args(
        cls,
        site_id: str,
        admin_user: str,
        admin_password: str,
        admin_email: str,
        db_name: str,
        db_user: str,
        db_password: str,
    ) -> "SiteRequest":
        """
        Build a request from raw CLI arguments.

        Names and the email are sanitized; passwords are kept verbatim.

        Raises:
            ValidationError: If any argument is malformed
        """
        return cls(
            site_id=sanitize(site_id),
            admin=AdminCredentials(
                username=sanitize(admin_user),
                password=admin_password,
                email=sanitize(admin_email),
            ),
            database=DatabaseCredentials(
                name=sanitize(db_name),
                user=sanitize(db_user),
                password=db_password,
            ),
        )


@dataclass(frozen=True)
class SiteInfo:
    """Snapshot returned after a successful provisioning run."""
    site_id: str
    directory: str
    url: str
    admin_user: str
    database: str
    database_user: str
    vhost_config: str


@dataclass
class HealthStatus:
    """Result of probing one backing service or tool."""
    component: str
    available: bool
    reasons: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.available


class StepOutcome(Enum):
    """Per-step outcome in compensation and removal reports."""
    UNDONE = "undone"
    REMOVED = "removed"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass
class CompensationRecord:
    """One rollback attempt."""
    step: str
    resource: str
    outcome: StepOutcome
    error: Optional[Exception] = None


@dataclass
class CompensationReport:
    """
    Result of rolling back a failed provisioning run.

    Records appear in the order compensations ran (reverse completion
    order).
    """
    records: List[CompensationRecord] = field(default_factory=list)

    @property
    def failures(self) -> List[CompensationRecord]:
        return [r for r in self.records if r.outcome == StepOutcome.FAILED]

    @property
    def clean(self) -> bool:
        """True when every compensation succeeded."""
        return not self.failures


@dataclass
class DecommissionRecord:
    """Outcome of one removal step."""
    step: str
    resource: str
    outcome: StepOutcome
    detail: str = ""
    error: Optional[Exception] = None


@dataclass
class DecommissionReport:
    """Per-step results of a removal run."""
    site_id: str
    records: List[DecommissionRecord] = field(default_factory=list)

    @property
    def failed(self) -> List[DecommissionRecord]:
        return [r for r in self.records if r.outcome == StepOutcome.FAILED]

    @property
    def removed(self) -> List[DecommissionRecord]:
        return [r for r in self.records if r.outcome == StepOutcome.REMOVED]

    @property
    def success(self) -> bool:
        return not self.failed
