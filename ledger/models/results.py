"""
Result Models

Read-only outputs produced by the validator, the invoice calculator and
the query layer. None of these are persisted.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from ledger.models.entities import Expense, Income, ReportBasis, TaxStatus


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'dangling_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="Id of the offending record when validating a batch"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a submission.

    Errors block the operation. Warnings are reported but let it proceed.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# INVOICES
# =============================================================================

class InvoiceBucket(BaseModel):
    """Pending credit expenses of one card that fall due in one month."""

    month_key: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Due month as YYYY-MM"
    )
    expenses: list[Expense] = Field(default_factory=list)
    total: float = 0.0

    @property
    def expense_ids(self) -> list[str]:
        return [expense.id for expense in self.expenses]


# =============================================================================
# QUERY MODELS
# =============================================================================

class CategoryTotal(BaseModel):
    name: str
    value: float


class MonthlyOverview(BaseModel):
    """Dashboard figures for one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    balance: float = Field(
        ...,
        description="Sum of every account's current balance (not month-bound)"
    )
    income: float
    pending_income: float
    expenses: float
    pending_expenses: float
    breakdown_by_type: dict[str, float] = Field(default_factory=dict)
    breakdown_by_category: list[CategoryTotal] = Field(default_factory=list)
    annual_pj_revenue: float = Field(
        default=0.0,
        description="Business income for the whole year"
    )


class PeriodReport(BaseModel):
    """Income statement for one month on a cash or competence basis."""

    year: int
    month: int = Field(..., ge=1, le=12)
    basis: ReportBasis
    tax_filter: Optional[TaxStatus] = None
    total_income: float
    total_expense: float
    result: float
    margin_pct: float
    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)


class YieldSummary(BaseModel):
    """Investment accounts and what they earned on a given day."""

    day: dt.date
    total_invested: float
    yields_on_day: float
    account_ids: list[str] = Field(default_factory=list)
