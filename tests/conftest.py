"""Shared fixtures for ledger tests."""

from datetime import date

import pytest

from ledger.config import LedgerSettings
from ledger.engine import LedgerEngine
from ledger.models.entities import (
    Account,
    CreditCard,
    Expense,
    ExpenseStatus,
    Income,
    IncomeStatus,
    LedgerState,
    PaymentMethod,
)
from ledger.storage import InMemoryStorage, LedgerRepository
from ledger.validation import TransactionValidator


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings(_env_file=None)


@pytest.fixture
def checking() -> Account:
    return Account(
        id="acc-checking",
        name="Cora",
        type="Conta Bancária",
        initial_balance=1000.0,
        current_balance=1000.0,
    )


@pytest.fixture
def savings() -> Account:
    return Account(
        id="acc-savings",
        name="MP - DK",
        type="Rendimentos",
        initial_balance=5000.0,
        current_balance=5000.0,
        yield_rate=100.0,
        yield_index="CDI",
    )


@pytest.fixture
def card() -> CreditCard:
    return CreditCard(
        id="card-nubank",
        name="Nubank",
        brand="Mastercard",
        closing_day=25,
        due_day=5,
        limit=3000.0,
    )


@pytest.fixture
def state(checking, savings, card) -> LedgerState:
    return LedgerState(
        accounts=[checking, savings],
        credit_cards=[card],
        expense_categories=["Alimentação", "Materiais"],
        income_categories=["Serviço"],
        account_types=["Conta Bancária", "Rendimentos"],
    )


@pytest.fixture
def engine(settings) -> LedgerEngine:
    return LedgerEngine(validator=TransactionValidator(settings))


@pytest.fixture
def make_expense():
    """Factory for a debit expense; override any field."""
    def _make(**overrides) -> Expense:
        fields = dict(
            description="Papelaria",
            amount=100.0,
            category="Materiais",
            date=date(2025, 1, 10),
            due_date=date(2025, 1, 10),
            payment_method=PaymentMethod.DEBIT,
            account_id="acc-checking",
            status=ExpenseStatus.PENDING,
        )
        fields.update(overrides)
        return Expense(**fields)
    return _make


@pytest.fixture
def make_credit_expense():
    """Factory for a pending credit-card expense."""
    def _make(**overrides) -> Expense:
        fields = dict(
            description="Tráfego Pago",
            amount=100.0,
            category="Tráfego Pago",
            date=date(2025, 1, 20),
            due_date=date(2025, 2, 5),
            payment_method=PaymentMethod.CREDIT,
            card_id="card-nubank",
            status=ExpenseStatus.PENDING,
        )
        fields.update(overrides)
        return Expense(**fields)
    return _make


@pytest.fixture
def make_income():
    """Factory for an income; override any field."""
    def _make(**overrides) -> Income:
        fields = dict(
            description="Ensaio fotográfico",
            amount=500.0,
            category="Serviço",
            date=date(2025, 1, 15),
            account_id="acc-checking",
            status=IncomeStatus.PENDING,
        )
        fields.update(overrides)
        return Income(**fields)
    return _make


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def repository(memory_storage, settings) -> LedgerRepository:
    return LedgerRepository(memory_storage, settings)
