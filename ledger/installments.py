"""
Installment Expander

Turns one purchase or receivable into N dated records sharing an
installment group id. The records are independent rows afterwards:
nothing cascades across the group.

Every generated installment starts out pending, including the first one.
Future-dated installments are not realized yet, and a realized first
installment can be marked paid/received afterwards through a status change.
"""

from typing import Optional

import structlog

from ledger import money
from ledger.dates import add_months
from ledger.errors import InstallmentError
from ledger.invoices import compute_due_date
from ledger.models.entities import (
    Batch,
    CreditCard,
    Expense,
    ExpenseStatus,
    Income,
    IncomeStatus,
    InstallmentValueMode,
    new_id,
)


logger = structlog.get_logger(__name__)


def installment_amount(
    amount: float,
    count: int,
    value_mode: InstallmentValueMode,
) -> float:
    """Amount carried by each installment."""
    value_mode = InstallmentValueMode(value_mode)
    if count < 1:
        raise InstallmentError(f"Installment count must be at least 1, got {count}")
    if value_mode is InstallmentValueMode.TOTAL_AMOUNT:
        return money.split(amount, count)
    return amount


def _label(description: str, number: int, count: int) -> str:
    return f"{description} ({number}/{count})"


def expand_expense_installments(
    template: Expense,
    count: int,
    value_mode: InstallmentValueMode = InstallmentValueMode.PER_INSTALLMENT,
    group_id: Optional[str] = None,
) -> Batch:
    """
    Expand an expense into `count` monthly installments.

    The purchase date is kept on every record; the due date of record i
    is the template's due date (or purchase date) shifted by i months.
    """
    per_item = installment_amount(template.amount, count, value_mode)
    first_due = template.due_date or template.date
    if first_due is None:
        raise InstallmentError("An expense needs a date or due date to be split")

    group_id = group_id or new_id()
    records = [
        template.model_copy(update={
            "id": new_id(),
            "description": _label(template.description, i + 1, count),
            "amount": per_item,
            "due_date": add_months(first_due, i),
            "status": ExpenseStatus.PENDING,
            "paid_date": None,
            "installments": True,
            "installment_number": i + 1,
            "total_installments": count,
            "installment_group_id": group_id,
        })
        for i in range(count)
    ]
    logger.debug(
        "installments_expanded",
        kind="expense",
        group_id=group_id,
        count=count,
        per_installment=per_item,
    )
    return Batch[Expense](records=records)


def expand_credit_purchase(
    template: Expense,
    card: CreditCard,
    count: int,
    value_mode: InstallmentValueMode = InstallmentValueMode.PER_INSTALLMENT,
) -> Batch:
    """
    Expand a credit-card purchase: the first due date comes from the
    card's invoice cycle, later ones follow monthly.
    """
    if template.date is None:
        raise InstallmentError("A credit purchase needs a purchase date")
    first = template.model_copy(update={
        "card_id": card.id,
        "due_date": compute_due_date(template.date, card),
    })
    return expand_expense_installments(first, count, value_mode)


def expand_income_installments(
    template: Income,
    count: int,
    value_mode: InstallmentValueMode = InstallmentValueMode.TOTAL_AMOUNT,
    group_id: Optional[str] = None,
) -> Batch:
    """
    Expand a receivable into `count` monthly installments.

    The cash date shifts by one month per installment; so does the
    competence date when one is given.
    """
    per_item = installment_amount(template.amount, count, value_mode)
    if template.date is None:
        raise InstallmentError("An income needs a date to be split")

    group_id = group_id or new_id()
    records = []
    for i in range(count):
        competence = (
            add_months(template.competence_date, i)
            if template.competence_date
            else None
        )
        records.append(template.model_copy(update={
            "id": new_id(),
            "description": _label(template.description, i + 1, count),
            "amount": per_item,
            "date": add_months(template.date, i),
            "competence_date": competence,
            "status": IncomeStatus.PENDING,
            "installments": True,
            "installment_number": i + 1,
            "total_installments": count,
            "installment_group_id": group_id,
        }))
    logger.debug(
        "installments_expanded",
        kind="income",
        group_id=group_id,
        count=count,
        per_installment=per_item,
    )
    return Batch[Income](records=records)
