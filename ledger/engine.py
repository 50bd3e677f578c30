"""
Ledger Engine

The only component allowed to change Account.current_balance.

Every operation takes the current LedgerState and returns a new one; the
input is never mutated. Operations are synchronous and run to completion,
so a caller never observes a half-applied change.

BALANCE RULES:
- A paid, account-backed expense has been debited from its account once.
- A received income has been credited to its account once.
- pending -> paid/received applies the effect; the reverse transition
  undoes it. Deleting a realized record undoes its effect first.
- Credit-card expenses never touch a balance on their own. Paying an
  invoice debits the caller-computed total once from the source account.
- A reference to an account that no longer exists is not an error: the
  balance change is skipped.
"""

from datetime import date
from typing import Iterable, Optional

import structlog

from ledger import money
from ledger.audit import AuditLogger
from ledger.errors import LedgerValidationError
from ledger.models.entities import (
    Account,
    BalancePoint,
    CreditCard,
    Expense,
    ExpenseStatus,
    Income,
    IncomeStatus,
    LedgerState,
    Single,
    Submission,
    new_id,
)
from ledger.models.events import LedgerEvent, LedgerEventBuilder, LedgerEventType
from ledger.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class LedgerEngine:
    """
    Applies create/update/delete/status/invoice operations to the ledger
    aggregate while keeping account balances consistent.
    """

    def __init__(
        self,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _emit(self, event: LedgerEvent) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)

    def _adjust(
        self,
        state: LedgerState,
        account_id: Optional[str],
        delta: float,
        reason: str,
    ) -> bool:
        """
        Move a working-copy account balance by `delta`.

        Returns False (and changes nothing) when the account is gone.
        """
        account = state.find_account(account_id)
        if account is None:
            logger.debug("balance_change_skipped", account_id=account_id, reason=reason)
            return False

        if delta >= 0:
            account.current_balance = money.credit(account.current_balance, delta)
        else:
            account.current_balance = money.debit(account.current_balance, -delta)
        self._emit(LedgerEventBuilder.balance_adjusted(
            account.id, delta, account.current_balance, reason
        ))
        return True

    def _check(self, submission: Submission, state: LedgerState, entity_type: str) -> None:
        result = self._validator.validate_submission(submission, state)
        if not result.is_valid:
            self._emit(LedgerEventBuilder.validation_failed(
                entity_type, [i.model_dump() for i in result.issues]
            ))
            raise LedgerValidationError(result)

    @staticmethod
    def _expense_effect(expense: Expense) -> float:
        """Signed balance effect an expense currently has on its account."""
        return -expense.amount if expense.affects_account else 0.0

    @staticmethod
    def _income_effect(income: Income) -> float:
        return income.amount if income.affects_account else 0.0

    @staticmethod
    def _fresh_ids(records: list, existing: Iterable[str]) -> list:
        """Give a new id to any record whose id is already taken."""
        taken = set(existing)
        result = []
        for record in records:
            if record.id in taken:
                record = record.model_copy(update={"id": new_id()})
            taken.add(record.id)
            result.append(record)
        return result

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def create_expense(self, state: LedgerState, submission: Submission) -> LedgerState:
        """
        Append one expense or an installment batch.

        Paid account-backed expenses are debited from their account.
        Credit expenses never change a balance here.

        Raises:
            LedgerValidationError: If any record is invalid (nothing is applied)
        """
        self._check(submission, state, "expense")
        new_state = state.model_copy(deep=True)

        records = self._fresh_ids(
            [e.model_copy(deep=True) for e in submission.items()],
            (e.id for e in new_state.expenses),
        )
        for expense in records:
            effect = self._expense_effect(expense)
            if effect:
                self._adjust(new_state, expense.account_id, effect, "expense_created")
            new_state.expenses.append(expense)

        self._emit(LedgerEventBuilder.transactions_created(
            "expense", [e.id for e in records], money.total(e.amount for e in records)
        ))
        return new_state

    def update_expense(self, state: LedgerState, expense: Expense) -> LedgerState:
        """
        Replace an expense by id.

        The old version's effect is undone before the new version's effect
        is applied, so amount, account and status may all change at once.
        Unknown ids are a no-op.
        """
        previous = state.find_expense(expense.id)
        if previous is None:
            logger.debug("expense_update_ignored", expense_id=expense.id)
            return state

        self._check(Single[Expense](item=expense), state, "expense")
        new_state = state.model_copy(deep=True)

        old_effect = self._expense_effect(previous)
        if old_effect:
            self._adjust(new_state, previous.account_id, -old_effect, "expense_edit_reverted")
        new_effect = self._expense_effect(expense)
        if new_effect:
            self._adjust(new_state, expense.account_id, new_effect, "expense_edit_applied")

        new_state.expenses = [
            expense.model_copy(deep=True) if e.id == expense.id else e
            for e in new_state.expenses
        ]
        self._emit(LedgerEventBuilder.transaction_updated("expense", expense.id))
        return new_state

    def delete_expense(self, state: LedgerState, expense_id: str) -> LedgerState:
        """
        Remove an expense, refunding its account first if it was paid.

        Unknown ids are a no-op, so a repeated delete never refunds twice.
        """
        return self.bulk_delete_expenses(state, [expense_id])

    def bulk_delete_expenses(
        self,
        state: LedgerState,
        expense_ids: Iterable[str],
    ) -> LedgerState:
        """Refund every selected paid expense, then remove all selected."""
        selected = set(expense_ids)
        doomed = [e for e in state.expenses if e.id in selected]
        if not doomed:
            logger.debug("expense_delete_ignored", expense_ids=sorted(selected))
            return state

        new_state = state.model_copy(deep=True)
        for expense in doomed:
            effect = self._expense_effect(expense)
            if effect:
                self._adjust(new_state, expense.account_id, -effect, "expense_deleted")

        new_state.expenses = [e for e in new_state.expenses if e.id not in selected]
        self._emit(LedgerEventBuilder.transactions_deleted("expense", [e.id for e in doomed]))
        return new_state

    def bulk_change_expense_status(
        self,
        state: LedgerState,
        expense_ids: Iterable[str],
        new_status: ExpenseStatus,
    ) -> LedgerState:
        """
        Move selected expenses to `new_status`.

        Account-backed expenses are debited when they become paid and
        refunded when they go back to pending. Expenses already at the
        target status are left alone.
        """
        new_status = ExpenseStatus(new_status)
        selected = set(expense_ids)
        new_state = state.model_copy(deep=True)
        changed = []

        for expense in new_state.expenses:
            if expense.id not in selected or expense.status is new_status:
                continue
            before = self._expense_effect(expense)
            expense.status = new_status
            if new_status is ExpenseStatus.PENDING:
                expense.paid_date = None
            delta = self._expense_effect(expense) - before
            if delta:
                self._adjust(new_state, expense.account_id, delta, "expense_status_changed")
            changed.append(expense.id)

        if not changed:
            return state
        self._emit(LedgerEventBuilder.status_changed("expense", changed, new_status.value))
        return new_state

    # -------------------------------------------------------------------------
    # Incomes
    # -------------------------------------------------------------------------

    def create_income(self, state: LedgerState, submission: Submission) -> LedgerState:
        """
        Append one income or an installment batch.

        Received incomes are credited to their account.

        Raises:
            LedgerValidationError: If any record is invalid (nothing is applied)
        """
        self._check(submission, state, "income")
        new_state = state.model_copy(deep=True)

        records = self._fresh_ids(
            [i.model_copy(deep=True) for i in submission.items()],
            (i.id for i in new_state.incomes),
        )
        for income in records:
            effect = self._income_effect(income)
            if effect:
                self._adjust(new_state, income.account_id, effect, "income_created")
            new_state.incomes.append(income)

        self._emit(LedgerEventBuilder.transactions_created(
            "income", [i.id for i in records], money.total(i.amount for i in records)
        ))
        return new_state

    def update_income(self, state: LedgerState, income: Income) -> LedgerState:
        """
        Replace an income by id, undoing the old effect before applying
        the new one. Unknown ids are a no-op.
        """
        previous = state.find_income(income.id)
        if previous is None:
            logger.debug("income_update_ignored", income_id=income.id)
            return state

        self._check(Single[Income](item=income), state, "income")
        new_state = state.model_copy(deep=True)

        old_effect = self._income_effect(previous)
        if old_effect:
            self._adjust(new_state, previous.account_id, -old_effect, "income_edit_reverted")
        new_effect = self._income_effect(income)
        if new_effect:
            self._adjust(new_state, income.account_id, new_effect, "income_edit_applied")

        new_state.incomes = [
            income.model_copy(deep=True) if i.id == income.id else i
            for i in new_state.incomes
        ]
        self._emit(LedgerEventBuilder.transaction_updated("income", income.id))
        return new_state

    def delete_income(self, state: LedgerState, income_id: str) -> LedgerState:
        """
        Remove an income, debiting its account first if it was received.

        Unknown ids are a no-op.
        """
        return self.bulk_delete_incomes(state, [income_id])

    def bulk_delete_incomes(
        self,
        state: LedgerState,
        income_ids: Iterable[str],
    ) -> LedgerState:
        """Reverse every selected received income, then remove all selected."""
        selected = set(income_ids)
        doomed = [i for i in state.incomes if i.id in selected]
        if not doomed:
            logger.debug("income_delete_ignored", income_ids=sorted(selected))
            return state

        new_state = state.model_copy(deep=True)
        for income in doomed:
            effect = self._income_effect(income)
            if effect:
                self._adjust(new_state, income.account_id, -effect, "income_deleted")

        new_state.incomes = [i for i in new_state.incomes if i.id not in selected]
        self._emit(LedgerEventBuilder.transactions_deleted("income", [i.id for i in doomed]))
        return new_state

    def bulk_change_income_status(
        self,
        state: LedgerState,
        income_ids: Iterable[str],
        new_status: IncomeStatus,
    ) -> LedgerState:
        """
        Move selected incomes to `new_status`: received credits the
        account, pending debits it back. Incomes already at the target
        status are left alone.
        """
        new_status = IncomeStatus(new_status)
        selected = set(income_ids)
        new_state = state.model_copy(deep=True)
        changed = []

        for income in new_state.incomes:
            if income.id not in selected or income.status is new_status:
                continue
            before = self._income_effect(income)
            income.status = new_status
            delta = self._income_effect(income) - before
            if delta:
                self._adjust(new_state, income.account_id, delta, "income_status_changed")
            changed.append(income.id)

        if not changed:
            return state
        self._emit(LedgerEventBuilder.status_changed("income", changed, new_status.value))
        return new_state

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def pay_invoice(
        self,
        state: LedgerState,
        expense_ids: Iterable[str],
        source_account_id: str,
        total_amount: float,
        payment_date: Optional[date] = None,
    ) -> LedgerState:
        """
        Settle a card invoice.

        Marks every listed credit expense paid and debits `total_amount`
        once from the source account. The total is computed by the caller
        (see invoices.selected_total). A missing source account skips the
        debit; the expenses are still marked paid. Ids of non-credit
        expenses are ignored; those settle through their own account. When
        no listed id is a credit expense nothing is debited.
        """
        selected = set(expense_ids)
        if not selected:
            return state
        if total_amount < 0:
            raise LedgerValidationError.single(
                field="total_amount",
                message="Invoice total cannot be negative",
            )

        new_state = state.model_copy(deep=True)

        paid = []
        for expense in new_state.expenses:
            if expense.id not in selected:
                continue
            if not expense.is_credit:
                logger.warning("invoice_item_ignored", expense_id=expense.id)
                continue
            expense.status = ExpenseStatus.PAID
            if payment_date is not None:
                expense.paid_date = payment_date
            paid.append(expense.id)

        if not paid:
            logger.warning("invoice_payment_ignored", expense_ids=sorted(selected))
            return state

        self._adjust(new_state, source_account_id, -total_amount, "invoice_paid")
        self._emit(LedgerEventBuilder.invoice_paid(source_account_id, paid, total_amount))
        return new_state

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def create_account(self, state: LedgerState, account: Account) -> LedgerState:
        """Add an account; its current balance starts at the initial balance."""
        new_state = state.model_copy(deep=True)
        created = account.model_copy(update={"current_balance": account.initial_balance})
        if new_state.find_account(created.id) is not None:
            created = created.model_copy(update={"id": new_id()})
        new_state.accounts.append(created)
        self._emit(LedgerEventBuilder.account_changed(
            LedgerEventType.ACCOUNT_CREATED, created.id, created.name
        ))
        return new_state

    def edit_account(self, state: LedgerState, account: Account) -> LedgerState:
        """Replace an account by id. Transactions are not touched."""
        if state.find_account(account.id) is None:
            logger.debug("account_edit_ignored", account_id=account.id)
            return state
        new_state = state.model_copy(deep=True)
        new_state.accounts = [
            account.model_copy(deep=True) if a.id == account.id else a
            for a in new_state.accounts
        ]
        self._emit(LedgerEventBuilder.account_changed(
            LedgerEventType.ACCOUNT_UPDATED, account.id, account.name
        ))
        return new_state

    def delete_account(self, state: LedgerState, account_id: str) -> LedgerState:
        """
        Remove an account. Transactions keep their (now dangling)
        account_id untouched.
        """
        account = state.find_account(account_id)
        if account is None:
            return state
        new_state = state.model_copy(deep=True)
        new_state.accounts = [a for a in new_state.accounts if a.id != account_id]
        self._emit(LedgerEventBuilder.account_changed(
            LedgerEventType.ACCOUNT_DELETED, account.id, account.name
        ))
        return new_state

    def record_yield(
        self,
        state: LedgerState,
        account_id: str,
        amount: float,
        on: date,
        notes: Optional[str] = None,
    ) -> LedgerState:
        """
        Credit an investment yield and update the balance history.

        A history point already on `on` grows by `amount`; otherwise a
        point with the new balance is added and the history re-sorted.
        Unknown accounts are a no-op.
        """
        if state.find_account(account_id) is None:
            logger.debug("yield_ignored", account_id=account_id)
            return state

        new_state = state.model_copy(deep=True)
        self._adjust(new_state, account_id, amount, "yield_recorded")
        account = new_state.find_account(account_id)

        point = next((p for p in account.balance_history if p.date == on), None)
        if point is not None:
            point.value = money.credit(point.value, amount)
        else:
            account.balance_history.append(
                BalancePoint(date=on, value=account.current_balance)
            )
            account.balance_history.sort(key=lambda p: p.date)

        account.last_yield = amount
        account.last_yield_date = on
        account.last_yield_note = notes
        self._emit(LedgerEventBuilder.yield_recorded(account_id, amount, on.isoformat()))
        return new_state

    # -------------------------------------------------------------------------
    # Credit cards
    # -------------------------------------------------------------------------

    def create_credit_card(self, state: LedgerState, card: CreditCard) -> LedgerState:
        new_state = state.model_copy(deep=True)
        if new_state.find_card(card.id) is not None:
            card = card.model_copy(update={"id": new_id()})
        new_state.credit_cards.append(card.model_copy(deep=True))
        self._emit(LedgerEventBuilder.card_changed(
            LedgerEventType.CARD_CREATED, card.id, card.name
        ))
        return new_state

    def edit_credit_card(self, state: LedgerState, card: CreditCard) -> LedgerState:
        if state.find_card(card.id) is None:
            return state
        new_state = state.model_copy(deep=True)
        new_state.credit_cards = [
            card.model_copy(deep=True) if c.id == card.id else c
            for c in new_state.credit_cards
        ]
        self._emit(LedgerEventBuilder.card_changed(
            LedgerEventType.CARD_UPDATED, card.id, card.name
        ))
        return new_state

    def delete_credit_card(self, state: LedgerState, card_id: str) -> LedgerState:
        """Remove a card. Its expenses keep a dangling card_id."""
        card = state.find_card(card_id)
        if card is None:
            return state
        new_state = state.model_copy(deep=True)
        new_state.credit_cards = [c for c in new_state.credit_cards if c.id != card_id]
        self._emit(LedgerEventBuilder.card_changed(
            LedgerEventType.CARD_DELETED, card.id, card.name
        ))
        return new_state

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    _CATEGORY_LISTS = {
        "expense": "expense_categories",
        "income": "income_categories",
        "account_type": "account_types",
    }

    def add_category(self, state: LedgerState, kind: str, name: str) -> LedgerState:
        """Append a category name if it is new. Blank names are ignored."""
        field = self._CATEGORY_LISTS[kind]
        name = name.strip()
        if not name or name in getattr(state, field):
            return state
        new_state = state.model_copy(deep=True)
        getattr(new_state, field).append(name)
        self._emit(LedgerEventBuilder.category_changed(
            LedgerEventType.CATEGORY_ADDED, kind, name
        ))
        return new_state

    def remove_category(self, state: LedgerState, kind: str, name: str) -> LedgerState:
        """
        Remove a category name. The last remaining one is kept; records
        already using a removed name keep it.
        """
        field = self._CATEGORY_LISTS[kind]
        names = getattr(state, field)
        if name not in names:
            return state
        if len(names) <= 1:
            raise LedgerValidationError.single(
                field=field,
                message="At least one category is required",
            )
        new_state = state.model_copy(deep=True)
        setattr(new_state, field, [n for n in names if n != name])
        self._emit(LedgerEventBuilder.category_changed(
            LedgerEventType.CATEGORY_REMOVED, kind, name
        ))
        return new_state
