"""
Submission Validation

Runs before the Ledger Engine mutates anything. Two kinds of findings:

ERRORS block the operation:
- Missing description, amount or date
- Non-positive amount
- Income without a destination account
- Expense without a payment source (card for credit, account otherwise)

WARNINGS are reported but let the operation proceed:
- Account or card id that no longer exists (dangling references are
  tolerated; the engine just skips the balance change)
- Unusually large amounts

Validation never fixes anything. It reports.
"""

from typing import Optional

from ledger.config import LedgerSettings, get_settings
from ledger.models.entities import (
    Expense,
    Income,
    LedgerState,
    Submission,
    Transaction,
)
from ledger.models.results import ValidationIssue, ValidationResult


class TransactionValidator:
    """
    Validates expenses and incomes against the current aggregate.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings()

    def _validate_common(self, record: Transaction) -> list[ValidationIssue]:
        issues = []

        if not record.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                record_id=record.id,
            ))

        if record.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                record_id=record.id,
            ))
        elif record.amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({record.amount:,.2f}) seems unusually high",
                severity="warning",
                record_id=record.id,
            ))

        if record.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
                record_id=record.id,
            ))

        return issues

    def _expense_issues(
        self,
        expense: Expense,
        state: LedgerState,
    ) -> list[ValidationIssue]:
        issues = self._validate_common(expense)

        if expense.is_credit:
            if not expense.card_id:
                issues.append(ValidationIssue(
                    field="card_id",
                    issue_type="missing",
                    message="Credit expenses need a credit card",
                    severity="error",
                    record_id=expense.id,
                ))
            elif state.find_card(expense.card_id) is None:
                issues.append(ValidationIssue(
                    field="card_id",
                    issue_type="dangling_reference",
                    message=f"Credit card {expense.card_id} no longer exists",
                    severity="warning",
                    record_id=expense.id,
                ))
        elif not expense.account_id:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message=f"{expense.payment_method.value} expenses need a source account",
                severity="error",
                record_id=expense.id,
            ))
        elif state.find_account(expense.account_id) is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="dangling_reference",
                message=f"Account {expense.account_id} no longer exists",
                severity="warning",
                record_id=expense.id,
            ))

        return issues

    def _income_issues(
        self,
        income: Income,
        state: LedgerState,
    ) -> list[ValidationIssue]:
        issues = self._validate_common(income)

        if not income.account_id:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="Incomes need a destination account",
                severity="error",
                record_id=income.id,
            ))
        elif state.find_account(income.account_id) is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="dangling_reference",
                message=f"Account {income.account_id} no longer exists",
                severity="warning",
                record_id=income.id,
            ))

        return issues

    def validate(
        self,
        record: Transaction,
        state: LedgerState,
    ) -> ValidationResult:
        """Validate one expense or income."""
        if isinstance(record, Expense):
            issues = self._expense_issues(record, state)
        elif isinstance(record, Income):
            issues = self._income_issues(record, state)
        else:
            raise TypeError(f"Cannot validate {type(record).__name__}")

        is_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(is_valid=is_valid, issues=issues)

    def validate_submission(
        self,
        submission: Submission,
        state: LedgerState,
    ) -> ValidationResult:
        """
        Validate every record of a submission.

        A batch is only valid if all of its records are.
        """
        issues: list[ValidationIssue] = []
        for record in submission.items():
            issues.extend(self.validate(record, state).issues)

        is_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(is_valid=is_valid, issues=issues)
