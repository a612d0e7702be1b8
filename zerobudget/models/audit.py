"""
Audit Models for the Budget Core

Every balance- or assignment-affecting action is logged for audit purposes.
This provides:
1. Traceability of every change to money
2. Debugging information when an invariant breaks
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from zerobudget.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_EDITED = "transaction_edited"
    TRANSACTION_DELETED = "transaction_deleted"

    # Categories and assignment
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    CATEGORY_ASSIGNED = "category_assigned"
    QUICK_ASSIGNED = "quick_assigned"
    DISTRIBUTED_EVENLY = "distributed_evenly"
    MONTH_ROLLED_OVER = "month_rolled_over"
    UNDO_APPLIED = "undo_applied"
    UNDO_REJECTED = "undo_rejected"
    READY_TO_ASSIGN_NEGATIVE = "ready_to_assign_negative"

    # Statement import
    IMPORT_MAPPING_REJECTED = "import_mapping_rejected"
    IMPORT_COMPLETED = "import_completed"

    # System events
    INVARIANT_VIOLATION = "invariant_violation"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'category', 'import')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - all events of one user command
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user command?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_recorded(tx_id, "expense", "42.00", account_id, cid)
        event = AuditEventBuilder.undo_applied(action_id, "Assigned 50 to Rent", cid)

    Amounts are passed as strings so details stay JSON-serializable
    without losing Decimal precision.
    """

    @staticmethod
    def account_created(
        account_id: UUID,
        name: str,
        starting_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account created: {name}",
            details={"name": name, "starting_balance": starting_balance},
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(
        account_id: UUID,
        balance: str,
        policy: str,
        affected_transactions: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        nonzero = Decimal(balance) != 0
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            severity=AuditSeverity.WARNING if nonzero else AuditSeverity.INFO,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=(
                f"Account deleted with non-zero balance {balance}"
                if nonzero else "Account deleted"
            ),
            details={
                "balance": balance,
                "policy": policy,
                "affected_transactions": affected_transactions,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: UUID,
        kind: str,
        amount: str,
        account_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recorded {kind} of {amount}",
            details={
                "kind": kind,
                "amount": amount,
                "account_id": str(account_id) if account_id else None,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_edited(
        transaction_id: UUID,
        old_amount: str,
        new_amount: str,
        old_account_id: Optional[UUID],
        new_account_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_EDITED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction edited: {old_amount} -> {new_amount}",
            details={
                "old_amount": old_amount,
                "new_amount": new_amount,
                "old_account_id": str(old_account_id) if old_account_id else None,
                "new_account_id": str(new_account_id) if new_account_id else None,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted: {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def category_changed(
        event_type: AuditEventType,
        category_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category {event_type.value.split('_', 1)[1]}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def assignment(
        event_type: AuditEventType,
        action_id: UUID,
        description: str,
        changes: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """Any command that produced an UndoAction."""
        return AuditEvent(
            event_type=event_type,
            entity_type="undo_action",
            entity_id=action_id,
            correlation_id=correlation_id,
            description=description,
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def undo_applied(
        action_id: UUID,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNDO_APPLIED,
            entity_type="undo_action",
            entity_id=action_id,
            correlation_id=correlation_id,
            description=f"Undone: {description}",
            is_user_action=True,
        )

    @staticmethod
    def undo_rejected(
        action_id: UUID,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNDO_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="undo_action",
            entity_id=action_id,
            correlation_id=correlation_id,
            description="Undo rejected",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def ready_to_assign_negative(
        value: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.READY_TO_ASSIGN_NEGATIVE,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Categories are over-assigned: Ready to Assign is {value}",
            details={"ready_to_assign": value},
        )

    @staticmethod
    def month_rolled_over(
        month: str,
        category_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_ROLLED_OVER,
            correlation_id=correlation_id,
            description=f"Rolled over {category_count} categories from {month}",
            details={"month": month, "category_count": category_count},
            is_user_action=True,
        )

    @staticmethod
    def import_mapping_rejected(
        account_id: Optional[UUID],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_MAPPING_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Statement import rejected before conversion",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def import_completed(
        account_id: UUID,
        success_count: int,
        failure_count: int,
        errors: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if failure_count else AuditSeverity.INFO,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=(
                f"Statement import: {success_count} imported, {failure_count} failed"
            ),
            details={
                "success_count": success_count,
                "failure_count": failure_count,
                "errors": errors[:50],
            },
            is_user_action=True,
        )

    @staticmethod
    def invariant_violation(
        entity_id: Optional[UUID],
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVARIANT_VIOLATION,
            severity=AuditSeverity.CRITICAL,
            entity_type="account",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description="Ledger invariant violated",
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
