"""
Tests for the ledger models

Test strategy:
1. Unit tests for individual components (models, calculators, engine)
2. Integration tests for the service with in-memory storage
3. No real filesystem outside pytest's tmp_path
"""

import pytest
from datetime import date

from pydantic import ValidationError

from ledger.models.entities import (
    Account,
    Batch,
    CreditCard,
    Expense,
    ExpenseStatus,
    ExpenseType,
    Income,
    PaymentMethod,
    Role,
    Single,
    TaxStatus,
    User,
)
from ledger.models.events import (
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventSeverity,
    LedgerEventType,
)
from ledger.models.results import ValidationIssue, ValidationResult


class TestAccountModel:
    """Tests for Account."""

    def test_account_strips_whitespace(self):
        """Test that whitespace is stripped from the account name."""
        account = Account(name="  Sicredi  ", type="Conta Bancária")
        assert account.name == "Sicredi"

    def test_account_defaults(self):
        """Test that a new account gets an id and zero balances."""
        account = Account(name="Dinheiro", type="Dinheiro (Espécie)")
        assert account.id
        assert account.current_balance == 0.0
        assert account.balance_history == []

    def test_investment_by_type(self):
        """Test that 'Rendimentos' accounts count as investments."""
        assert Account(name="MP", type="Rendimentos").is_investment is True
        assert Account(name="Cora", type="Conta Bancária").is_investment is False

    def test_investment_by_yield_rate(self):
        """Test that a positive yield rate makes any account an investment."""
        account = Account(name="Cora", type="Conta Bancária", yield_rate=100.0)
        assert account.is_investment is True

    def test_serializes_with_camel_case_keys(self):
        """Test that the stored layout uses camelCase keys."""
        account = Account(name="Cora", type="Conta Bancária", initial_balance=10.0)
        dumped = account.model_dump(by_alias=True)
        assert dumped["initialBalance"] == 10.0
        assert "currentBalance" in dumped

    def test_parses_camel_case_keys(self):
        """Test loading a record in the stored layout."""
        account = Account.model_validate({
            "id": "1",
            "name": "Cora",
            "type": "Conta Bancária",
            "initialBalance": 0,
            "currentBalance": 0.32,
        })
        assert account.current_balance == 0.32


class TestCreditCardModel:
    """Tests for CreditCard."""

    def test_card_creation(self):
        card = CreditCard(name="Nubank", brand="Mastercard", closing_day=25, due_day=5)
        assert card.closing_day == 25
        assert card.limit is None

    @pytest.mark.parametrize("day", [0, 32])
    def test_card_rejects_out_of_range_days(self, day):
        """Test closing/due days must be 1..31."""
        with pytest.raises(ValidationError):
            CreditCard(name="X", closing_day=day, due_day=5)
        with pytest.raises(ValidationError):
            CreditCard(name="X", closing_day=10, due_day=day)

    def test_card_rejects_negative_limit(self):
        with pytest.raises(ValidationError):
            CreditCard(name="X", closing_day=10, due_day=20, limit=-1)


class TestExpenseModel:
    """Tests for Expense."""

    def test_defaults(self):
        """Test default status, type and tax status."""
        expense = Expense(description="Luz", amount=10.0, account_id="a")
        assert expense.status == ExpenseStatus.PENDING
        assert expense.type == ExpenseType.VARIABLE
        assert expense.tax_status == TaxStatus.PJ

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            Expense(description="Luz", amount=-5.0, account_id="a")

    def test_credit_expense_cannot_reference_account(self):
        """Test a credit expense tied to an account is rejected."""
        with pytest.raises(ValidationError, match="Credit expenses cannot reference an account"):
            Expense(
                description="Loja",
                amount=10.0,
                payment_method=PaymentMethod.CREDIT,
                account_id="a",
                card_id="c",
            )

    def test_debit_expense_cannot_reference_card(self):
        with pytest.raises(ValidationError, match="cannot reference a credit card"):
            Expense(
                description="Loja",
                amount=10.0,
                payment_method=PaymentMethod.PIX,
                card_id="c",
            )

    def test_payment_method_from_stored_value(self):
        """Test the Portuguese stored values parse into the enum."""
        expense = Expense.model_validate({
            "description": "Loja",
            "amount": 10,
            "paymentMethod": "Crédito",
            "cardId": "c",
        })
        assert expense.is_credit is True

    def test_affects_account(self):
        """Test only paid, account-backed, non-credit expenses hit a balance."""
        paid = Expense(description="a", amount=1, account_id="x", status=ExpenseStatus.PAID)
        pending = Expense(description="a", amount=1, account_id="x")
        credit = Expense(
            description="a",
            amount=1,
            payment_method=PaymentMethod.CREDIT,
            card_id="c",
            status=ExpenseStatus.PAID,
        )
        assert paid.affects_account is True
        assert pending.affects_account is False
        assert credit.affects_account is False


class TestIncomeModel:

    def test_competence_date_alias(self):
        income = Income.model_validate({
            "description": "Cliente",
            "amount": 100,
            "date": "2025-02-10",
            "competenceDate": "2025-01-31",
            "accountId": "a",
            "status": "received",
        })
        assert income.competence_date == date(2025, 1, 31)
        assert income.affects_account is True


class TestSubmissions:
    """Tests for the explicit single/batch payloads."""

    def test_single_items(self):
        expense = Expense(description="a", amount=1, account_id="x")
        assert Single[Expense](item=expense).items() == [expense]

    def test_batch_items(self):
        records = [Income(description=str(i), amount=1, account_id="x") for i in range(3)]
        batch = Batch[Income](records=records)
        assert batch.kind == "batch"
        assert len(batch.items()) == 3

    def test_empty_batch_rejected(self):
        with pytest.raises(ValidationError):
            Batch[Expense](records=[])


class TestUserModel:

    def test_admin_sees_everything(self):
        admin = User(username="agdk", role=Role.ADMIN, permissions=["DASHBOARD"])
        assert admin.can_view("REPORTS") is True

    def test_user_limited_to_permissions(self):
        user = User(username="ana", permissions=["DASHBOARD", "INCOMES"])
        assert user.can_view("INCOMES") is True
        assert user.can_view("REPORTS") is False

    def test_user_without_permissions_is_unrestricted(self):
        assert User(username="ana").can_view("REPORTS") is True


class TestLedgerState:

    def test_lookups_return_none_for_missing_ids(self, state):
        """Test that dangling references resolve to None."""
        assert state.find_account("gone") is None
        assert state.find_card(None) is None
        assert state.find_expense("gone") is None
        assert state.find_income("gone") is None

    def test_lookup_finds_account(self, state):
        assert state.find_account("acc-checking").name == "Cora"


class TestEventModels:
    """Tests for ledger event models."""

    def test_event_creation(self):
        event = LedgerEvent(
            event_type=LedgerEventType.EXPENSE_CREATED,
            description="Expense created",
        )
        assert event.severity == LedgerEventSeverity.INFO

    def test_event_to_log_dict(self):
        event = LedgerEventBuilder.invoice_paid("acc-1", ["e1", "e2"], 250.0)
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "invoice_paid"
        assert log_dict["details"]["total_amount"] == 250.0

    def test_balance_adjusted_is_debug(self):
        event = LedgerEventBuilder.balance_adjusted("acc-1", -50.0, 950.0, "expense_created")
        assert event.severity == LedgerEventSeverity.DEBUG
        assert event.details["new_balance"] == 950.0

    def test_every_event_type_has_a_builder(self):
        """Test that no event type exists without a way to emit it."""
        built = [
            LedgerEventBuilder.transactions_created("expense", ["e1"], 1.0),
            LedgerEventBuilder.transactions_created("income", ["i1"], 1.0),
            LedgerEventBuilder.transaction_updated("expense", "e1"),
            LedgerEventBuilder.transaction_updated("income", "i1"),
            LedgerEventBuilder.transactions_deleted("expense", ["e1"]),
            LedgerEventBuilder.transactions_deleted("income", ["i1"]),
            LedgerEventBuilder.status_changed("expense", ["e1"], "paid"),
            LedgerEventBuilder.status_changed("income", ["i1"], "received"),
            LedgerEventBuilder.balance_adjusted("acc-1", 1.0, 1.0, "x"),
            LedgerEventBuilder.invoice_paid("acc-1", ["e1"], 1.0),
            LedgerEventBuilder.yield_recorded("acc-1", 1.0, "2025-01-01"),
            LedgerEventBuilder.validation_failed("expense", []),
            LedgerEventBuilder.storage_fallback("k", "x"),
            LedgerEventBuilder.save_failed("x"),
        ]
        for event_type in (
            LedgerEventType.ACCOUNT_CREATED,
            LedgerEventType.ACCOUNT_UPDATED,
            LedgerEventType.ACCOUNT_DELETED,
        ):
            built.append(LedgerEventBuilder.account_changed(event_type, "acc-1", "Cora"))
        for event_type in (
            LedgerEventType.CARD_CREATED,
            LedgerEventType.CARD_UPDATED,
            LedgerEventType.CARD_DELETED,
        ):
            built.append(LedgerEventBuilder.card_changed(event_type, "card-1", "Nubank"))
        for event_type in (LedgerEventType.CATEGORY_ADDED, LedgerEventType.CATEGORY_REMOVED):
            built.append(LedgerEventBuilder.category_changed(event_type, "income", "Outros"))

        assert {e.event_type for e in built} == set(LedgerEventType)


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="account_id",
                    issue_type="dangling_reference",
                    message="Account gone",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert len(result.warnings) == 1
