"""
Provisioning steps and the compensation stack.

A ProvisioningStep pairs a forward action against one resource with an
optional compensating action. A Transaction runs steps in order and
remembers which ones completed; compensate_all() undoes them in strict
reverse completion order.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from wpsite.core.errors import (
    AdapterError,
    CompensationError,
    OperationInterrupted,
    SiteError,
)
from wpsite.core.models import CompensationRecord, CompensationReport, StepOutcome
from wpsite.logging import get_site_logger

logger = get_site_logger(__name__)


@dataclass
class ProvisioningStep:
    """
    A named unit of work.

    forward() mutates one resource and may return a value; that value is
    stored in ``result`` and handed to compensate() when the step is undone.
    Steps without a compensation rely on an earlier step's compensation.

    A step interrupted part way through is compensated too, with ``result``
    left as None, since forward() may already have changed its resource.
    """
    name: str
    resource: str
    forward: Callable[[], Any]
    compensate: Optional[Callable[[Any], None]] = None
    completed: bool = False
    interrupted: bool = False
    result: Any = None

    def __str__(self):
        return f"{self.resource}:{self.name}"


@dataclass
class Transaction:
    """
    Ordered step execution with compensation.

    Example:
        txn = Transaction("demo")
        txn.run(ProvisioningStep("create database", "database",
                                 forward=lambda: db.create_database("demo_db"),
                                 compensate=lambda _: db.drop_database("demo_db")))
        ...
        txn.close()
    """
    site_id: str
    completed: List[ProvisioningStep] = field(default_factory=list)
    closed: bool = False
    compensated: bool = False

    def run(self, step: ProvisioningStep) -> Any:
        """
        Run a step's forward action.

        Raises:
            SiteError: The step's own error, or AdapterError wrapping any
                unexpected exception, or OperationInterrupted
        """
        if self.closed or self.compensated:
            raise RuntimeError(f"Transaction for '{self.site_id}' is finished")

        # Registered before forward() so an interrupt at any point leaves the
        # step on the stack; its compensation tolerates a missing resource.
        self.completed.append(step)
        try:
            step.result = step.forward()
        except OperationInterrupted:
            step.interrupted = True
            raise
        except KeyboardInterrupt as e:
            step.interrupted = True
            raise OperationInterrupted() from e
        except SiteError:
            self.completed.remove(step)
            raise
        except Exception as e:
            self.completed.remove(step)
            raise AdapterError(step.resource, step.name, str(e)) from e

        step.completed = True
        return step.result

    def compensate_all(self) -> CompensationReport:
        """
        Undo every completed step in reverse completion order.

        Failures are logged and recorded, never raised: rollback is best
        effort and must reach every step.
        """
        report = CompensationReport()
        if self.closed or self.compensated:
            return report

        self.compensated = True

        for step in reversed(self.completed):
            if step.compensate is None:
                continue

            try:
                step.compensate(step.result)
            except Exception as e:
                error = CompensationError(step.name, step.resource, e)
                logger.error(str(error))
                report.records.append(
                    CompensationRecord(step.name, step.resource, StepOutcome.FAILED, error)
                )
                continue

            logger.action("delete", str(step), "rolled back")
            report.records.append(
                CompensationRecord(step.name, step.resource, StepOutcome.UNDONE)
            )

        return report

    def close(self) -> None:
        """Mark the transaction committed; compensation can no longer run."""
        self.closed = True
