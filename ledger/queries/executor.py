"""
Ledger Queries

Read-only views over a LedgerState: the monthly overview shown on the
dashboard, the cash/competence income statement and the yields summary.

Queries never mutate state and never touch storage. Dangling account or
card references resolve to a "deleted" label instead of failing.
"""

from collections import defaultdict
from datetime import date
from typing import Optional

from ledger import money
from ledger.dates import in_month
from ledger.models.entities import (
    Account,
    Expense,
    ExpenseStatus,
    ExpenseType,
    Income,
    IncomeStatus,
    LedgerState,
    ReportBasis,
    TaxStatus,
)
from ledger.models.results import (
    CategoryTotal,
    MonthlyOverview,
    PeriodReport,
    YieldSummary,
)


DELETED_ACCOUNT_LABEL = "Conta Excluída"
DELETED_CARD_LABEL = "Cartão Excluído"
UNCATEGORIZED_LABEL = "Sem Categoria"


class LedgerQueries:
    """
    Executes read-side queries against one ledger snapshot.
    """

    def __init__(self, state: LedgerState):
        self._state = state

    # -------------------------------------------------------------------------
    # Reference labels
    # -------------------------------------------------------------------------

    def account_label(self, account_id: Optional[str]) -> str:
        account = self._state.find_account(account_id)
        return account.name if account else DELETED_ACCOUNT_LABEL

    def card_label(self, card_id: Optional[str]) -> str:
        card = self._state.find_card(card_id)
        return card.name if card else DELETED_CARD_LABEL

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    def total_balance(self) -> float:
        return money.total(a.current_balance for a in self._state.accounts)

    def monthly_overview(self, year: int, month: int) -> MonthlyOverview:
        """
        Dashboard figures for a month.

        Incomes are matched by cash date, expenses by due date. The
        balance is the sum of current balances and is not month-bound.
        """
        incomes = [i for i in self._state.incomes if in_month(i.date, year, month)]
        expenses = [e for e in self._state.expenses if in_month(e.due_date, year, month)]

        by_type = {
            t.value: money.total(e.amount for e in expenses if e.type is t)
            for t in ExpenseType
        }

        by_category: dict[str, float] = defaultdict(float)
        for expense in expenses:
            by_category[expense.category or UNCATEGORIZED_LABEL] += expense.amount
        categories = sorted(
            (CategoryTotal(name=name, value=value) for name, value in by_category.items()),
            key=lambda c: c.value,
            reverse=True,
        )

        annual_pj = money.total(
            i.amount for i in self._state.incomes
            if i.date is not None
            and i.date.year == year
            and i.tax_status is not TaxStatus.PF
        )

        return MonthlyOverview(
            year=year,
            month=month,
            balance=self.total_balance(),
            income=money.total(i.amount for i in incomes),
            pending_income=money.total(
                i.amount for i in incomes if i.status is IncomeStatus.PENDING
            ),
            expenses=money.total(e.amount for e in expenses),
            pending_expenses=money.total(
                e.amount for e in expenses if e.status is ExpenseStatus.PENDING
            ),
            breakdown_by_type=by_type,
            breakdown_by_category=categories,
            annual_pj_revenue=annual_pj,
        )

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    @staticmethod
    def _income_date(income: Income, basis: ReportBasis) -> Optional[date]:
        if basis is ReportBasis.COMPETENCE:
            return income.competence_date or income.date
        return income.date

    @staticmethod
    def _expense_date(expense: Expense, basis: ReportBasis) -> Optional[date]:
        if basis is ReportBasis.COMPETENCE:
            return expense.date
        return expense.due_date

    def period_report(
        self,
        year: int,
        month: int,
        basis: ReportBasis = ReportBasis.CASH,
        tax_filter: Optional[TaxStatus] = None,
    ) -> PeriodReport:
        """
        Income statement for a month.

        Cash basis: income cash date, expense due date.
        Competence basis: income competence date (falling back to the cash
        date), expense purchase date.
        """
        basis = ReportBasis(basis)

        incomes = [
            i for i in self._state.incomes
            if in_month(self._income_date(i, basis), year, month)
            and (tax_filter is None or i.tax_status is tax_filter)
        ]
        expenses = [
            e for e in self._state.expenses
            if in_month(self._expense_date(e, basis), year, month)
            and (tax_filter is None or e.tax_status is tax_filter)
        ]

        total_income = money.total(i.amount for i in incomes)
        total_expense = money.total(e.amount for e in expenses)
        result = total_income - total_expense
        margin = (result / total_income) * 100 if total_income > 0 else 0.0

        return PeriodReport(
            year=year,
            month=month,
            basis=basis,
            tax_filter=tax_filter,
            total_income=total_income,
            total_expense=total_expense,
            result=result,
            margin_pct=margin,
            incomes=incomes,
            expenses=expenses,
        )

    # -------------------------------------------------------------------------
    # Investments
    # -------------------------------------------------------------------------

    def investment_accounts(self) -> list[Account]:
        return [a for a in self._state.accounts if a.is_investment]

    def yields_on(self, day: date) -> YieldSummary:
        """Total invested and the yields recorded for `day`."""
        accounts = self.investment_accounts()
        return YieldSummary(
            day=day,
            total_invested=money.total(a.current_balance for a in accounts),
            yields_on_day=money.total(
                a.last_yield for a in accounts
                if a.last_yield_date == day and a.last_yield
            ),
            account_ids=[a.id for a in accounts],
        )
