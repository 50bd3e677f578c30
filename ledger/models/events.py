"""
Ledger Event Models

Every balance mutation and every persistence fallback produces an event.
This provides:
1. Traceability of each balance change back to the operation that made it
2. Debugging information when balances look wrong
3. A history the host application can display

Events are append-only. They are never modified after creation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEventType(str, Enum):
    """
    Types of events we record.

    Each Ledger Engine operation has its own event type.
    """
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_STATUS_CHANGED = "expense_status_changed"

    # Incomes
    INCOME_CREATED = "income_created"
    INCOME_UPDATED = "income_updated"
    INCOME_DELETED = "income_deleted"
    INCOME_STATUS_CHANGED = "income_status_changed"

    # Cards and invoices
    INVOICE_PAID = "invoice_paid"
    CARD_CREATED = "card_created"
    CARD_UPDATED = "card_updated"
    CARD_DELETED = "card_deleted"

    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"
    YIELD_RECORDED = "yield_recorded"
    BALANCE_ADJUSTED = "balance_adjusted"

    # Categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_REMOVED = "category_removed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    STORAGE_FALLBACK = "storage_fallback"
    SAVE_FAILED = "save_failed"


class LedgerEventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """
    A single ledger event.

    This is the core unit of the ledger trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: LedgerEventSeverity = LedgerEventSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'income', 'account')"
    )
    entity_id: Optional[str] = None

    # Correlates every event emitted by one service call
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

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
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.balance_adjusted(account_id, -50.0, 950.0, "expense_created")
        event = LedgerEventBuilder.invoice_paid(account_id, expense_ids, 250.0)
    """

    @staticmethod
    def transactions_created(
        entity_type: str,
        ids: list[str],
        total: float,
    ) -> LedgerEvent:
        event_type = (
            LedgerEventType.EXPENSE_CREATED
            if entity_type == "expense"
            else LedgerEventType.INCOME_CREATED
        )
        return LedgerEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=ids[0] if len(ids) == 1 else None,
            description=f"{len(ids)} {entity_type}(s) created totalling {total:.2f}",
            details={"ids": ids, "total": total},
        )

    @staticmethod
    def transaction_updated(entity_type: str, record_id: str) -> LedgerEvent:
        event_type = (
            LedgerEventType.EXPENSE_UPDATED
            if entity_type == "expense"
            else LedgerEventType.INCOME_UPDATED
        )
        return LedgerEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=record_id,
            description=f"{entity_type.capitalize()} {record_id} updated",
        )

    @staticmethod
    def transactions_deleted(entity_type: str, ids: list[str]) -> LedgerEvent:
        event_type = (
            LedgerEventType.EXPENSE_DELETED
            if entity_type == "expense"
            else LedgerEventType.INCOME_DELETED
        )
        return LedgerEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=ids[0] if len(ids) == 1 else None,
            description=f"{len(ids)} {entity_type}(s) deleted",
            details={"ids": ids},
        )

    @staticmethod
    def status_changed(
        entity_type: str,
        ids: list[str],
        new_status: str,
    ) -> LedgerEvent:
        event_type = (
            LedgerEventType.EXPENSE_STATUS_CHANGED
            if entity_type == "expense"
            else LedgerEventType.INCOME_STATUS_CHANGED
        )
        return LedgerEvent(
            event_type=event_type,
            entity_type=entity_type,
            description=f"{len(ids)} {entity_type}(s) moved to {new_status}",
            details={"ids": ids, "new_status": new_status},
        )

    @staticmethod
    def balance_adjusted(
        account_id: str,
        delta: float,
        new_balance: float,
        reason: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BALANCE_ADJUSTED,
            severity=LedgerEventSeverity.DEBUG,
            entity_type="account",
            entity_id=account_id,
            description=f"Balance adjusted by {delta:+.2f} ({reason})",
            details={
                "delta": delta,
                "new_balance": new_balance,
                "reason": reason,
            },
        )

    @staticmethod
    def invoice_paid(
        account_id: str,
        expense_ids: list[str],
        total_amount: float,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.INVOICE_PAID,
            entity_type="account",
            entity_id=account_id,
            description=f"Invoice of {total_amount:.2f} paid with {len(expense_ids)} item(s)",
            details={
                "expense_ids": expense_ids,
                "total_amount": total_amount,
            },
        )

    @staticmethod
    def account_changed(
        event_type: LedgerEventType,
        account_id: str,
        name: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=event_type,
            entity_type="account",
            entity_id=account_id,
            description=f"Account '{name}': {event_type.value.replace('_', ' ')}",
        )

    @staticmethod
    def card_changed(
        event_type: LedgerEventType,
        card_id: str,
        name: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=event_type,
            entity_type="credit_card",
            entity_id=card_id,
            description=f"Card '{name}': {event_type.value.replace('_', ' ')}",
        )

    @staticmethod
    def category_changed(
        event_type: LedgerEventType,
        kind: str,
        name: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=event_type,
            entity_type="category",
            entity_id=name,
            description=f"Category '{name}' ({kind}): {event_type.value.replace('_', ' ')}",
            details={"kind": kind},
        )

    @staticmethod
    def yield_recorded(
        account_id: str,
        amount: float,
        on: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.YIELD_RECORDED,
            entity_type="account",
            entity_id=account_id,
            description=f"Yield of {amount:.2f} recorded for {on}",
            details={"amount": amount, "date": on},
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.VALIDATION_FAILED,
            severity=LedgerEventSeverity.WARNING,
            entity_type=entity_type,
            description=f"{entity_type.capitalize()} rejected with {len(issues)} issue(s)",
            details={"issues": issues},
        )

    @staticmethod
    def storage_fallback(key: str, reason: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.STORAGE_FALLBACK,
            severity=LedgerEventSeverity.WARNING,
            entity_type="storage",
            entity_id=key,
            description=f"Falling back to defaults for '{key}'",
            error_message=reason,
        )

    @staticmethod
    def save_failed(error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SAVE_FAILED,
            severity=LedgerEventSeverity.ERROR,
            entity_type="storage",
            description="Could not persist ledger state",
            error_message=error_message,
        )
