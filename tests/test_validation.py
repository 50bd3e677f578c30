"""Tests for submission validation."""

import pytest

from ledger.config import LedgerSettings
from ledger.models.entities import Batch, Expense, PaymentMethod, Single
from ledger.validation import TransactionValidator


@pytest.fixture
def validator(settings) -> TransactionValidator:
    return TransactionValidator(settings)


def _fields(result, severity="error"):
    return sorted(i.field for i in result.issues if i.severity == severity)


class TestExpenseValidation:
    """Tests for expense rules."""

    def test_valid_expense(self, validator, state, make_expense):
        result = validator.validate(make_expense(), state)
        assert result.is_valid is True
        assert result.issues == []

    def test_missing_fields(self, validator, state, make_expense):
        result = validator.validate(
            make_expense(description="", amount=0.0, date=None), state
        )
        assert result.is_valid is False
        assert _fields(result) == ["amount", "date", "description"]

    def test_debit_without_account(self, validator, state, make_expense):
        result = validator.validate(make_expense(account_id=None), state)
        assert _fields(result) == ["account_id"]

    def test_credit_without_card(self, validator, state, make_credit_expense):
        result = validator.validate(make_credit_expense(card_id=None), state)
        assert _fields(result) == ["card_id"]

    def test_dangling_card_is_warning(self, validator, state, make_credit_expense):
        result = validator.validate(make_credit_expense(card_id="gone"), state)
        assert result.is_valid is True
        assert _fields(result, "warning") == ["card_id"]

    def test_dangling_account_is_warning(self, validator, state, make_expense):
        result = validator.validate(
            make_expense(account_id="gone", payment_method=PaymentMethod.PIX), state
        )
        assert result.is_valid is True
        assert result.warnings[0].issue_type == "dangling_reference"

    def test_large_amount_is_warning(self, state, make_expense):
        validator = TransactionValidator(
            LedgerSettings(_env_file=None, max_transaction_amount=500.0)
        )
        result = validator.validate(make_expense(amount=600.0), state)
        assert result.is_valid is True
        assert result.warnings[0].issue_type == "suspicious_value"


class TestIncomeValidation:

    def test_income_needs_account(self, validator, state, make_income):
        result = validator.validate(make_income(account_id=None), state)
        assert _fields(result) == ["account_id"]

    def test_valid_income(self, validator, state, make_income):
        assert validator.validate(make_income(), state).is_valid is True


class TestSubmissionValidation:

    def test_single(self, validator, state, make_expense):
        result = validator.validate_submission(Single[Expense](item=make_expense()), state)
        assert result.is_valid is True

    def test_batch_invalid_if_any_record_invalid(self, validator, state, make_expense):
        bad = make_expense(description="")
        result = validator.validate_submission(
            Batch[Expense](records=[make_expense(), bad]), state
        )
        assert result.is_valid is False
        assert [i.record_id for i in result.issues] == [bad.id]

    def test_unsupported_record_type(self, validator, state, card):
        with pytest.raises(TypeError):
            validator.validate(card, state)
