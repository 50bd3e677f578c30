"""
Data Models Package

This package contains all Pydantic models used by the ledger.
Everything the engine reads or returns conforms to these schemas.
"""

from ledger.models.entities import (
    Account,
    BalancePoint,
    Batch,
    CompanyInfo,
    CreditCard,
    Expense,
    ExpenseStatus,
    ExpenseType,
    Income,
    IncomeStatus,
    InstallmentValueMode,
    LedgerState,
    PaymentMethod,
    ReportBasis,
    Role,
    Single,
    Submission,
    TaxStatus,
    Transaction,
    User,
    new_id,
)
from ledger.models.events import (
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventSeverity,
    LedgerEventType,
)
from ledger.models.results import (
    CategoryTotal,
    InvoiceBucket,
    MonthlyOverview,
    PeriodReport,
    ValidationIssue,
    ValidationResult,
    YieldSummary,
)

__all__ = [
    # Entities
    "Account",
    "BalancePoint",
    "Batch",
    "CompanyInfo",
    "CreditCard",
    "Expense",
    "ExpenseStatus",
    "ExpenseType",
    "Income",
    "IncomeStatus",
    "InstallmentValueMode",
    "LedgerState",
    "PaymentMethod",
    "ReportBasis",
    "Role",
    "Single",
    "Submission",
    "TaxStatus",
    "Transaction",
    "User",
    "new_id",
    # Events
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventSeverity",
    "LedgerEventType",
    # Results
    "CategoryTotal",
    "InvoiceBucket",
    "MonthlyOverview",
    "PeriodReport",
    "ValidationIssue",
    "ValidationResult",
    "YieldSummary",
]
