"""
Core wpsite functionality.

Exports the orchestrators, the step/transaction stack and the error types.
"""

from wpsite.core.errors import (
    SiteError,
    ValidationError,
    ConflictError,
    AlreadyExistsError,
    UnavailableError,
    AdapterError,
    ConfigInvalidError,
    OperationInterrupted,
    CompensationError,
    DecommissionError,
    NotConfirmedError,
)
from wpsite.core.models import (
    AdminCredentials,
    DatabaseCredentials,
    SiteRequest,
    SiteInfo,
    HealthStatus,
    StepOutcome,
    CompensationReport,
    DecommissionReport,
)
from wpsite.core.step import ProvisioningStep, Transaction
from wpsite.core.interrupt import InterruptGuard
from wpsite.core.preconditions import PreconditionChecker
from wpsite.core.provision import Provisioner
from wpsite.core.decommission import Decommissioner

__all__ = [
    "SiteError",
    "ValidationError",
    "ConflictError",
    "AlreadyExistsError",
    "UnavailableError",
    "AdapterError",
    "ConfigInvalidError",
    "OperationInterrupted",
    "CompensationError",
    "DecommissionError",
    "NotConfirmedError",
    "AdminCredentials",
    "DatabaseCredentials",
    "SiteRequest",
    "SiteInfo",
    "HealthStatus",
    "StepOutcome",
    "CompensationReport",
    "DecommissionReport",
    "ProvisioningStep",
    "Transaction",
    "InterruptGuard",
    "PreconditionChecker",
    "Provisioner",
    "Decommissioner",
]
