"""Exceptions raised by the ledger core."""

from ledger.models.results import ValidationIssue, ValidationResult


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerValidationError(LedgerError):
    """
    A submission was rejected before any mutation.

    The aggregate passed to the engine is left untouched.
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        errors = [i.message for i in result.issues if i.severity == "error"]
        super().__init__("; ".join(errors) or "Validation failed")

    @classmethod
    def single(cls, field: str, message: str, issue_type: str = "invalid_value") -> "LedgerValidationError":
        """Build an error carrying one error-level issue."""
        return cls(ValidationResult(
            is_valid=False,
            issues=[ValidationIssue(
                field=field,
                issue_type=issue_type,
                message=message,
                severity="error",
            )],
        ))


class InstallmentError(LedgerError, ValueError):
    """Invalid installment plan."""
    pass
