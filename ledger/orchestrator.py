"""
Ledger Service

Ties the components together for a host application:
1. Load the aggregate from storage (best-effort, never fatal)
2. Apply one Ledger Engine operation
3. Write the returned aggregate through to storage

The in-memory state is replaced before the write. If the write fails the
new state is kept, the failure is logged, and the StorageError is
re-raised so the host can tell the user. There is exactly one writer; two
processes sharing a storage directory will overwrite each other.
"""

from datetime import date
from typing import Callable, Iterable, Optional

import structlog

from ledger.audit import AuditLogger, configure_logging, create_correlation_id
from ledger.config import LedgerSettings, get_settings
from ledger.engine import LedgerEngine
from ledger.installments import (
    expand_credit_purchase,
    expand_expense_installments,
    expand_income_installments,
)
from ledger.invoices import group_invoices, open_invoice_expenses, selected_total
from ledger.models.entities import (
    Account,
    CreditCard,
    Expense,
    ExpenseStatus,
    Income,
    IncomeStatus,
    InstallmentValueMode,
    LedgerState,
    Single,
)
from ledger.models.events import LedgerEventBuilder
from ledger.models.results import InvoiceBucket
from ledger.queries import LedgerQueries
from ledger.storage import JsonFileStorage, LedgerRepository, StorageError
from ledger.storage.repository import AUDIT_LOG
from ledger.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class LedgerService:
    """
    Stateful facade over the Ledger Engine with write-through persistence.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        engine: Optional[LedgerEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._audit_logger = audit_logger
        self._engine = engine or LedgerEngine(audit_logger=audit_logger)
        self._state = repository.load_state()
        self._forward_storage_events()

    @property
    def state(self) -> LedgerState:
        return self._state

    def queries(self) -> LedgerQueries:
        return LedgerQueries(self._state)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _forward_storage_events(self) -> None:
        events = self._repository.drain_events()
        if self._audit_logger and events:
            self._audit_logger.log_many(events)

    def _apply(self, operation: str, change: Callable[[LedgerState], LedgerState]) -> LedgerState:
        correlation_id = create_correlation_id()
        log = logger.bind(operation=operation, correlation_id=str(correlation_id))

        if self._audit_logger:
            with self._audit_logger.correlate(correlation_id):
                new_state = change(self._state)
        else:
            new_state = change(self._state)

        if new_state is self._state:
            log.debug("ledger_noop")
            return self._state

        self._state = new_state
        try:
            self._repository.save_state(new_state)
        except StorageError as e:
            log.error("ledger_save_failed", error=str(e))
            if self._audit_logger:
                self._audit_logger.log(
                    LedgerEventBuilder.save_failed(str(e)),
                    correlation_id=correlation_id,
                )
            raise
        log.debug("ledger_saved")
        return self._state

    def reload(self) -> LedgerState:
        """Discard in-memory state and read storage again."""
        self._state = self._repository.load_state()
        self._forward_storage_events()
        return self._state

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def add_expense(self, expense: Expense) -> LedgerState:
        return self._apply(
            "create_expense",
            lambda s: self._engine.create_expense(s, Single[Expense](item=expense)),
        )

    def add_expense_installments(
        self,
        template: Expense,
        count: int,
        value_mode: InstallmentValueMode = InstallmentValueMode.PER_INSTALLMENT,
    ) -> LedgerState:
        """
        Add an installment plan. Credit purchases take their first due
        date from the card's invoice cycle.
        """
        card = self._state.find_card(template.card_id) if template.is_credit else None
        if card is not None:
            batch = expand_credit_purchase(template, card, count, value_mode)
        else:
            batch = expand_expense_installments(template, count, value_mode)
        return self._apply("create_expense", lambda s: self._engine.create_expense(s, batch))

    def update_expense(self, expense: Expense) -> LedgerState:
        return self._apply("update_expense", lambda s: self._engine.update_expense(s, expense))

    def delete_expense(self, expense_id: str) -> LedgerState:
        return self._apply("delete_expense", lambda s: self._engine.delete_expense(s, expense_id))

    def delete_expenses(self, expense_ids: Iterable[str]) -> LedgerState:
        ids = list(expense_ids)
        return self._apply("bulk_delete_expenses", lambda s: self._engine.bulk_delete_expenses(s, ids))

    def set_expense_status(self, expense_ids: Iterable[str], status: ExpenseStatus) -> LedgerState:
        ids = list(expense_ids)
        return self._apply(
            "bulk_change_expense_status",
            lambda s: self._engine.bulk_change_expense_status(s, ids, status),
        )

    # -------------------------------------------------------------------------
    # Incomes
    # -------------------------------------------------------------------------

    def add_income(self, income: Income) -> LedgerState:
        return self._apply(
            "create_income",
            lambda s: self._engine.create_income(s, Single[Income](item=income)),
        )

    def add_income_installments(
        self,
        template: Income,
        count: int,
        value_mode: InstallmentValueMode = InstallmentValueMode.TOTAL_AMOUNT,
    ) -> LedgerState:
        batch = expand_income_installments(template, count, value_mode)
        return self._apply("create_income", lambda s: self._engine.create_income(s, batch))

    def update_income(self, income: Income) -> LedgerState:
        return self._apply("update_income", lambda s: self._engine.update_income(s, income))

    def delete_income(self, income_id: str) -> LedgerState:
        return self._apply("delete_income", lambda s: self._engine.delete_income(s, income_id))

    def delete_incomes(self, income_ids: Iterable[str]) -> LedgerState:
        ids = list(income_ids)
        return self._apply("bulk_delete_incomes", lambda s: self._engine.bulk_delete_incomes(s, ids))

    def set_income_status(self, income_ids: Iterable[str], status: IncomeStatus) -> LedgerState:
        ids = list(income_ids)
        return self._apply(
            "bulk_change_income_status",
            lambda s: self._engine.bulk_change_income_status(s, ids, status),
        )

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def invoices(self, card_id: str) -> list[InvoiceBucket]:
        return group_invoices(self._state.expenses, card_id)

    def pay_invoice(
        self,
        card_id: str,
        expense_ids: Iterable[str],
        source_account_id: str,
        payment_date: Optional[date] = None,
    ) -> LedgerState:
        """
        Pay the selected open items of a card's invoices.

        Only pending credit expenses of that card are considered; the total
        debited is their sum.
        """
        wanted = set(expense_ids)
        open_items = [
            e for e in open_invoice_expenses(self._state.expenses, card_id)
            if e.id in wanted
        ]
        ids = [e.id for e in open_items]
        total_amount = selected_total(open_items, ids)
        return self._apply(
            "pay_invoice",
            lambda s: self._engine.pay_invoice(s, ids, source_account_id, total_amount, payment_date),
        )

    # -------------------------------------------------------------------------
    # Accounts and cards
    # -------------------------------------------------------------------------

    def add_account(self, account: Account) -> LedgerState:
        return self._apply("create_account", lambda s: self._engine.create_account(s, account))

    def edit_account(self, account: Account) -> LedgerState:
        return self._apply("edit_account", lambda s: self._engine.edit_account(s, account))

    def delete_account(self, account_id: str) -> LedgerState:
        return self._apply("delete_account", lambda s: self._engine.delete_account(s, account_id))

    def record_yield(
        self,
        account_id: str,
        amount: float,
        on: date,
        notes: Optional[str] = None,
    ) -> LedgerState:
        return self._apply(
            "record_yield",
            lambda s: self._engine.record_yield(s, account_id, amount, on, notes),
        )

    def add_credit_card(self, card: CreditCard) -> LedgerState:
        return self._apply("create_credit_card", lambda s: self._engine.create_credit_card(s, card))

    def edit_credit_card(self, card: CreditCard) -> LedgerState:
        return self._apply("edit_credit_card", lambda s: self._engine.edit_credit_card(s, card))

    def delete_credit_card(self, card_id: str) -> LedgerState:
        return self._apply("delete_credit_card", lambda s: self._engine.delete_credit_card(s, card_id))

    def add_category(self, kind: str, name: str) -> LedgerState:
        return self._apply("add_category", lambda s: self._engine.add_category(s, kind, name))

    def remove_category(self, kind: str, name: str) -> LedgerState:
        return self._apply("remove_category", lambda s: self._engine.remove_category(s, kind, name))

    # -------------------------------------------------------------------------
    # System
    # -------------------------------------------------------------------------

    def reset(self) -> LedgerState:
        """Wipe storage and start from the default collections."""
        self._repository.reset()
        return self.reload()


def create_app_components(
    settings: Optional[LedgerSettings] = None,
) -> tuple[LedgerService, LedgerRepository, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use. Defaults to the cached environment settings.

    Returns:
        (ledger_service, repository, audit_logger)
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    storage = JsonFileStorage(settings.storage_dir)
    repository = LedgerRepository(storage, settings)
    audit_logger = AuditLogger(
        storage,
        key=repository.key(AUDIT_LOG),
        max_events=settings.audit_max_events,
    )
    engine = LedgerEngine(
        validator=TransactionValidator(settings),
        audit_logger=audit_logger,
    )
    service = LedgerService(repository, engine=engine, audit_logger=audit_logger)

    logger.info("ledger_ready", storage_dir=str(settings.storage_dir))
    return service, repository, audit_logger
