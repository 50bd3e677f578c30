"""
Invoice Cycle Calculator

Maps a credit-card purchase to the due date of the invoice it lands on,
and groups a card's open purchases into monthly invoice buckets.

Cycle rules:
- A purchase on or after the closing day belongs to the next cycle.
- When the due day is numerically smaller than the closing day
  (e.g. closes on the 25th, due on the 5th) the due date falls in the
  month after the cycle month.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from ledger import money
from ledger.dates import add_months, month_key
from ledger.models.entities import CreditCard, Expense, ExpenseStatus
from ledger.models.results import InvoiceBucket


def compute_due_date(purchase_date: date, card: CreditCard) -> date:
    """
    Due date a credit expense bought on `purchase_date` should carry.

    >>> card = CreditCard(name="Nubank", closing_day=25, due_day=5)
    >>> compute_due_date(date(2025, 1, 20), card)
    datetime.date(2025, 2, 5)
    >>> compute_due_date(date(2025, 1, 28), card)
    datetime.date(2025, 3, 5)
    """
    shift = 0
    if purchase_date.day >= card.closing_day:
        shift += 1
    if card.due_day < card.closing_day:
        shift += 1
    return add_months(purchase_date, shift, day=card.due_day)


def invoice_month_key(expense: Expense) -> Optional[str]:
    """The invoice an expense belongs to, keyed by due month."""
    if expense.due_date is None:
        return None
    return month_key(expense.due_date)


def open_invoice_expenses(
    expenses: Iterable[Expense],
    card_id: str,
) -> list[Expense]:
    """Pending credit expenses of one card, oldest due date first."""
    selected = [
        expense for expense in expenses
        if expense.is_credit
        and expense.card_id == card_id
        and expense.status is ExpenseStatus.PENDING
        and expense.due_date is not None
    ]
    return sorted(selected, key=lambda e: e.due_date)


def group_invoices(
    expenses: Iterable[Expense],
    card_id: str,
) -> list[InvoiceBucket]:
    """
    Partition a card's open expenses into invoices by due month.

    Buckets are ordered by month; expenses inside a bucket by due date.
    """
    groups: dict[str, list[Expense]] = defaultdict(list)
    for expense in open_invoice_expenses(expenses, card_id):
        groups[month_key(expense.due_date)].append(expense)

    return [
        InvoiceBucket(
            month_key=key,
            expenses=groups[key],
            total=money.total(e.amount for e in groups[key]),
        )
        for key in sorted(groups)
    ]


def selected_total(expenses: Iterable[Expense], ids: Iterable[str]) -> float:
    """Sum of the selected expenses, as handed to invoice payment."""
    wanted = set(ids)
    return money.total(e.amount for e in expenses if e.id in wanted)
