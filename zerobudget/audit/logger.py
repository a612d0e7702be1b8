"""
Audit Logger

DESIGN DECISION: Every change to money is logged.
This provides:
1. Complete traceability of balances and assignments
2. Debugging capability when an invariant breaks
3. A history the user can review

The audit logger:
- Is async so persistence does not block the core
- Logs locally with structlog, always
- Propagates storage failures: a failed audit write is logged locally
  and then re-raised, never swallowed
- Supports correlation IDs to trace all events of one command
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from zerobudget.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from zerobudget.models.budget import ReadyToAssignSummary, UndoAction
from zerobudget.models.importing import ImportResult
from zerobudget.models.ledger import AccountDeletion, Transaction
from zerobudget.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, if configured (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("zerobudget.audit")

    async def log(self, event: AuditEvent) -> None:
        """
        Log an audit event locally, then persist it.

        Raises:
            StorageError: if the storage write fails
        """
        # Severity values match structlog method names
        getattr(self._logger, event.severity.value)("audit_event", **event.to_log_dict())

        if self._storage is None:
            return

        try:
            await self._storage.append_event(event)
        except StorageError as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            raise
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            raise StorageError(f"Could not persist audit event {event.event_id}: {e}") from e

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    async def log_transaction_recorded(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_recorded(
            transaction_id=transaction.id,
            kind=transaction.kind.value,
            amount=str(transaction.amount),
            account_id=transaction.account_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_edited(
        self,
        old: Transaction,
        new: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_edited(
            transaction_id=new.id,
            old_amount=str(old.signed_amount),
            new_amount=str(new.signed_amount),
            old_account_id=old.account_id,
            new_account_id=new.account_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction.id,
            amount=str(transaction.signed_amount),
            correlation_id=correlation_id,
        ))

    async def log_account_deleted(
        self,
        deletion: AccountDeletion,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Warning severity when the account still held money."""
        await self.log(AuditEventBuilder.account_deleted(
            account_id=deletion.account.id,
            balance=str(deletion.account.balance),
            policy=deletion.policy,
            affected_transactions=len(deletion.unlinked) + len(deletion.deleted),
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Budget
    # -------------------------------------------------------------------------

    async def log_assignment(
        self,
        event_type: AuditEventType,
        action: UndoAction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        changes = [
            {
                "category_id": str(change.category_id),
                "month": change.month.isoformat(),
                "previous_amount": str(change.previous_amount),
                "new_amount": str(change.new_amount),
            }
            for change in action.changes
        ]
        await self.log(AuditEventBuilder.assignment(
            event_type=event_type,
            action_id=action.action_id,
            description=action.description,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_ready_to_assign(
        self,
        summary: ReadyToAssignSummary,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Only over-assignment is worth an event; it is a warning, never an error."""
        if summary.value < Decimal("0"):
            await self.log(AuditEventBuilder.ready_to_assign_negative(
                value=str(summary.value),
                correlation_id=correlation_id,
            ))

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    async def log_import_completed(
        self,
        account_id: UUID,
        result: ImportResult,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.import_completed(
            account_id=account_id,
            success_count=result.success_count,
            failure_count=result.failure_count,
            errors=result.errors,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user command (e.g. one statement import)
    and pass it to every event the command produces.
    """
    return uuid4()
