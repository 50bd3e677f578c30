"""
Core Domain Models for the Ledger

These models define the strict schemas for everything the Ledger Engine
reads and writes. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Round-trip through the persisted JSON layout (camelCase keys)

Models carry no balance logic. Monetary amounts are non-negative
magnitudes; direction is implied by Expense (subtracts) vs Income (adds)
and by status.
"""

import datetime as dt
from enum import Enum
from typing import Generic, Literal, Optional, TypeVar, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Opaque unique identifier for entities and installment groups."""
    return uuid4().hex


# Shared config: strip strings, camelCase on the wire, snake_case in Python.
ENTITY_CONFIG = ConfigDict(
    str_strip_whitespace=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentMethod(str, Enum):
    """How an expense is paid. Only CREDIT routes through card invoices."""
    DEBIT = "Débito"
    CREDIT = "Crédito"
    PIX = "PIX"
    BOLETO = "Boleto"
    TRANSFER = "Transferência"
    CASH = "Dinheiro"

    @property
    def is_credit(self) -> bool:
        return self is PaymentMethod.CREDIT


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class IncomeStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"


class ExpenseType(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"
    PERSONAL = "personal"


class TaxStatus(str, Enum):
    """Business (PJ) vs personal (PF) attribution."""
    PJ = "PJ"
    PF = "PF"


class InstallmentValueMode(str, Enum):
    """
    How the amount typed by the user should be read when expanding
    an installment plan.
    """
    PER_INSTALLMENT = "per_installment"
    TOTAL_AMOUNT = "total_amount"


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class ReportBasis(str, Enum):
    """Cash basis (when money moves) vs competence basis (accrual)."""
    CASH = "cash"
    COMPETENCE = "competence"


# =============================================================================
# ACCOUNTS AND CARDS
# =============================================================================

class BalancePoint(BaseModel):
    """End-of-day balance snapshot on an investment account."""
    model_config = ENTITY_CONFIG

    date: dt.date
    value: float


class Account(BaseModel):
    """
    A balance-bearing account.

    current_balance is only ever changed by the Ledger Engine.
    """
    model_config = ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(
        ...,
        min_length=1,
        description="Free-text account category (e.g. 'Conta Bancária')"
    )
    initial_balance: float = Field(
        default=0.0,
        description="Snapshot at creation"
    )
    current_balance: float = Field(
        default=0.0,
        description="Mutated by the ledger"
    )

    # Investment tracking
    yield_rate: Optional[float] = Field(
        default=None,
        ge=0,
        description="Percentage of the yield index (e.g. 100 = 100% of CDI)"
    )
    yield_index: Optional[str] = None
    balance_history: list[BalancePoint] = Field(default_factory=list)
    last_yield: Optional[float] = None
    last_yield_date: Optional[dt.date] = None
    last_yield_note: Optional[str] = None

    @property
    def is_investment(self) -> bool:
        """Yield-bearing accounts are shown on the yields screen."""
        kind = self.type.lower()
        if "rendimento" in kind or "investimento" in kind:
            return True
        return self.yield_rate is not None and self.yield_rate > 0


class CreditCard(BaseModel):
    """
    A credit card. Not balance-bearing: it aggregates pending credit
    expenses into monthly invoices.
    """
    model_config = ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    brand: str = Field(default="", max_length=50)
    closing_day: int = Field(..., ge=1, le=31)
    due_day: int = Field(..., ge=1, le=31)
    limit: Optional[float] = Field(default=None, ge=0)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """Fields shared by expenses and incomes."""
    model_config = ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    description: str = Field(default="", max_length=300)
    amount: float = Field(default=0.0, ge=0)
    category: str = Field(default="")
    date: Optional[dt.date] = Field(
        default=None,
        description="Entry date: purchase date for expenses, cash date for incomes"
    )
    notes: Optional[str] = Field(default=None, max_length=1000)
    tax_status: TaxStatus = TaxStatus.PJ
    created_by: Optional[str] = None

    # Installment linkage (siblings are independent rows after creation)
    installments: bool = False
    installment_number: Optional[int] = Field(default=None, ge=1)
    total_installments: Optional[int] = Field(default=None, ge=1)
    installment_group_id: Optional[str] = None

    @property
    def is_installment(self) -> bool:
        return self.installments and self.installment_group_id is not None


class Expense(Transaction):
    """
    An outgoing transaction.

    Exactly one of account_id / card_id applies, depending on payment
    method. Credit expenses only ever touch a real balance through
    invoice payment.
    """

    due_date: Optional[dt.date] = Field(
        default=None,
        description="When the expense affects cash flow"
    )
    payment_method: PaymentMethod = PaymentMethod.DEBIT
    account_id: Optional[str] = None
    card_id: Optional[str] = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    type: ExpenseType = ExpenseType.VARIABLE
    paid_date: Optional[dt.date] = None

    @property
    def is_paid(self) -> bool:
        return self.status is ExpenseStatus.PAID

    @property
    def is_credit(self) -> bool:
        return self.payment_method.is_credit

    @property
    def affects_account(self) -> bool:
        """A paid, account-backed expense has already been debited."""
        return self.is_paid and self.account_id is not None and not self.is_credit

    @model_validator(mode='after')
    def validate_payment_source(self) -> 'Expense':
        """A credit expense is tied to a card, anything else to an account."""
        if self.is_credit and self.account_id:
            raise ValueError("Credit expenses cannot reference an account")
        if not self.is_credit and self.card_id:
            raise ValueError(
                f"{self.payment_method.value} expenses cannot reference a credit card"
            )
        return self


class Income(Transaction):
    """An incoming transaction. Always lands on an account."""

    competence_date: Optional[dt.date] = Field(
        default=None,
        description="Accrual date, independent of the cash date"
    )
    account_id: Optional[str] = None
    status: IncomeStatus = IncomeStatus.PENDING

    @property
    def is_received(self) -> bool:
        return self.status is IncomeStatus.RECEIVED

    @property
    def affects_account(self) -> bool:
        return self.is_received and self.account_id is not None


# =============================================================================
# SUBMISSIONS - explicit single vs batch payloads
# =============================================================================

TransactionT = TypeVar("TransactionT", bound=Transaction)


class Single(BaseModel, Generic[TransactionT]):
    """One transaction entered by the user."""

    kind: Literal["single"] = "single"
    item: TransactionT

    def items(self) -> list[TransactionT]:
        return [self.item]


class Batch(BaseModel, Generic[TransactionT]):
    """Several transactions created together (an installment plan)."""

    kind: Literal["batch"] = "batch"
    records: list[TransactionT] = Field(..., min_length=1)

    def items(self) -> list[TransactionT]:
        return list(self.records)


Submission = Union[Single, Batch]


# =============================================================================
# COMPANY AND USERS
# =============================================================================

class CompanyInfo(BaseModel):
    """Company profile stored alongside the ledger."""
    model_config = ENTITY_CONFIG

    name: str = "Minha Empresa"
    cnpj: str = "XX.XXX.XXX/0001-XX"
    start_date: Optional[dt.date] = None
    address: str = ""
    zip_code: Optional[str] = None
    phone: str = ""
    email: str = ""
    website: str = ""
    selic_rate: float = Field(default=13.75, ge=0)
    is_configured: bool = False


class User(BaseModel):
    """
    An application user.

    Admins see every view. Other users see the views listed in
    permissions; an empty list means no restriction.
    """
    model_config = ENTITY_CONFIG

    username: str = Field(..., min_length=1)
    name: str = ""
    role: Role = Role.USER
    permissions: list[str] = Field(default_factory=list)

    def can_view(self, view: str) -> bool:
        if self.role is Role.ADMIN or not self.permissions:
            return True
        return view in self.permissions


# =============================================================================
# AGGREGATE
# =============================================================================

class LedgerState(BaseModel):
    """
    The whole ledger aggregate.

    Passed into and returned from every Ledger Engine call. Lookups return
    None for ids that no longer exist; callers must handle that.
    """
    model_config = ENTITY_CONFIG

    accounts: list[Account] = Field(default_factory=list)
    credit_cards: list[CreditCard] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    account_types: list[str] = Field(default_factory=list)
    expense_categories: list[str] = Field(default_factory=list)
    income_categories: list[str] = Field(default_factory=list)

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def find_card(self, card_id: Optional[str]) -> Optional[CreditCard]:
        return next((c for c in self.credit_cards if c.id == card_id), None)

    def find_expense(self, expense_id: Optional[str]) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def find_income(self, income_id: Optional[str]) -> Optional[Income]:
        return next((i for i in self.incomes if i.id == income_id), None)
