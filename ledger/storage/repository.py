"""
Ledger Repository

Maps the ledger aggregate onto key-value storage: one JSON document per
collection, under the keys the web client uses
(`meumei_accounts`, `meumei_expenses`, ...).

Loading is best-effort. A missing, unreadable or corrupt key falls back
to its default collection and is reported as a warning event; a single
record that fails validation is skipped. Nothing here raises on read.

The only schema migration: expenses stored without a `type` become
`variable` (and records without a `taxStatus` get one).
"""

import json
from typing import Any, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from ledger.config import LedgerSettings, get_settings
from ledger.models.entities import (
    Account,
    CompanyInfo,
    CreditCard,
    Expense,
    ExpenseType,
    Income,
    LedgerState,
    TaxStatus,
    User,
)
from ledger.models.events import LedgerEvent, LedgerEventBuilder
from ledger.storage.interface import KeyValueStorageInterface, StorageError


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Storage keys (before the configured prefix)
COMPANY_INFO = "company_info"
USERS = "users"
ACCOUNTS = "accounts"
ACCOUNT_TYPES = "account_types"
CREDIT_CARDS = "credit_cards"
EXPENSES = "expenses"
EXPENSE_CATEGORIES = "expense_categories"
INCOMES = "incomes"
INCOME_CATEGORIES = "income_categories"
ACTIVE_SESSION = "active_session"
AUDIT_LOG = "audit_log"

ALL_KEYS = [
    COMPANY_INFO,
    USERS,
    ACCOUNTS,
    ACCOUNT_TYPES,
    CREDIT_CARDS,
    EXPENSES,
    EXPENSE_CATEGORIES,
    INCOMES,
    INCOME_CATEGORIES,
    ACTIVE_SESSION,
    AUDIT_LOG,
]

# Values a browser store leaves behind when `undefined`/`null` were serialized
_EMPTY_MARKERS = {"", "undefined", "null"}


def migrate_expense(record: dict) -> dict:
    """Fill fields that older stored expenses lack."""
    migrated = dict(record)
    if not migrated.get("type"):
        migrated["type"] = ExpenseType.VARIABLE.value
    if not migrated.get("taxStatus"):
        migrated["taxStatus"] = (
            TaxStatus.PF.value
            if migrated["type"] == ExpenseType.PERSONAL.value
            else TaxStatus.PJ.value
        )
    return migrated


def migrate_income(record: dict) -> dict:
    migrated = dict(record)
    if not migrated.get("taxStatus"):
        migrated["taxStatus"] = TaxStatus.PJ.value
    return migrated


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class LedgerRepository:
    """
    Reads and writes the ledger aggregate and its side collections
    (company profile, users, active session).
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings()
        self._events: list[LedgerEvent] = []

    def key(self, name: str) -> str:
        """Full storage key for a collection name."""
        return f"{self._settings.key_prefix}{name}"

    def drain_events(self) -> list[LedgerEvent]:
        """Fallback events recorded since the last call."""
        events, self._events = self._events, []
        return events

    # -------------------------------------------------------------------------
    # Low-level read/write
    # -------------------------------------------------------------------------

    def _fallback(self, name: str, reason: str) -> None:
        logger.warning("storage_fallback", key=self.key(name), reason=reason)
        self._events.append(LedgerEventBuilder.storage_fallback(self.key(name), reason))

    def _read_json(self, name: str) -> Optional[Any]:
        try:
            raw = self._storage.get(self.key(name))
        except StorageError as e:
            self._fallback(name, str(e))
            return None

        if raw is None or raw.strip() in _EMPTY_MARKERS:
            return None

        try:
            return json.loads(raw)
        except ValueError as e:
            self._fallback(name, f"corrupt JSON: {e}")
            return None

    def _write_json(self, name: str, value: Any) -> None:
        self._storage.set(self.key(name), json.dumps(value, ensure_ascii=False))

    def _load_records(
        self,
        name: str,
        model: type[ModelT],
        migrate: Optional[Callable[[dict], dict]] = None,
    ) -> list[ModelT]:
        data = self._read_json(name)
        if data is None:
            return []
        if not isinstance(data, list):
            self._fallback(name, f"expected a list, found {type(data).__name__}")
            return []

        records = []
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                logger.warning("record_skipped", key=self.key(name), index=index, reason="not an object")
                continue
            if migrate:
                item = migrate(item)
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "record_skipped",
                    key=self.key(name),
                    index=index,
                    record_id=item.get("id"),
                    errors=e.error_count(),
                )
        return records

    def _load_strings(self, name: str, default: list[str]) -> list[str]:
        data = self._read_json(name)
        if data is None:
            return list(default)
        if not isinstance(data, list) or not all(isinstance(s, str) for s in data):
            self._fallback(name, "expected a list of strings")
            return list(default)
        return data

    # -------------------------------------------------------------------------
    # Ledger aggregate
    # -------------------------------------------------------------------------

    def load_state(self) -> LedgerState:
        """
        Load every collection independently.

        Never raises: each collection degrades to its default on its own.
        """
        state = LedgerState(
            accounts=self._load_records(ACCOUNTS, Account),
            credit_cards=self._load_records(CREDIT_CARDS, CreditCard),
            expenses=self._load_records(EXPENSES, Expense, migrate_expense),
            incomes=self._load_records(INCOMES, Income, migrate_income),
            account_types=self._load_strings(
                ACCOUNT_TYPES, self._settings.default_account_types
            ),
            expense_categories=self._load_strings(
                EXPENSE_CATEGORIES, self._settings.default_expense_categories
            ),
            income_categories=self._load_strings(
                INCOME_CATEGORIES, self._settings.default_income_categories
            ),
        )
        logger.info(
            "state_loaded",
            accounts=len(state.accounts),
            credit_cards=len(state.credit_cards),
            expenses=len(state.expenses),
            incomes=len(state.incomes),
        )
        return state

    def save_state(self, state: LedgerState) -> None:
        """
        Write every collection.

        Keys are written one after another; there is no transaction
        across them.

        Raises:
            StorageError: If any write fails
        """
        self._write_json(ACCOUNTS, [_dump(a) for a in state.accounts])
        self._write_json(CREDIT_CARDS, [_dump(c) for c in state.credit_cards])
        self._write_json(EXPENSES, [_dump(e) for e in state.expenses])
        self._write_json(INCOMES, [_dump(i) for i in state.incomes])
        self._write_json(ACCOUNT_TYPES, state.account_types)
        self._write_json(EXPENSE_CATEGORIES, state.expense_categories)
        self._write_json(INCOME_CATEGORIES, state.income_categories)
        logger.debug("state_saved", expenses=len(state.expenses), incomes=len(state.incomes))

    # -------------------------------------------------------------------------
    # Company, users, session
    # -------------------------------------------------------------------------

    def load_company_info(self) -> CompanyInfo:
        """Stored company fields merged over the defaults."""
        data = self._read_json(COMPANY_INFO)
        if not isinstance(data, dict):
            return CompanyInfo()
        try:
            return CompanyInfo.model_validate({**_dump(CompanyInfo()), **data})
        except ValidationError as e:
            self._fallback(COMPANY_INFO, f"invalid company info ({e.error_count()} errors)")
            return CompanyInfo()

    def save_company_info(self, info: CompanyInfo) -> None:
        self._write_json(COMPANY_INFO, _dump(info))

    def load_users(self) -> list[User]:
        return self._load_records(USERS, User)

    def save_users(self, users: list[User]) -> None:
        self._write_json(USERS, [_dump(u) for u in users])

    def load_session(self) -> Optional[User]:
        data = self._read_json(ACTIVE_SESSION)
        if not isinstance(data, dict):
            return None
        try:
            return User.model_validate(data)
        except ValidationError:
            self._fallback(ACTIVE_SESSION, "invalid session")
            return None

    def save_session(self, user: User) -> None:
        self._write_json(ACTIVE_SESSION, _dump(user))

    def clear_session(self) -> None:
        self._storage.delete(self.key(ACTIVE_SESSION))

    def reset(self) -> None:
        """Remove every ledger key (system reset)."""
        for name in ALL_KEYS:
            self._storage.delete(self.key(name))
        logger.warning("storage_reset", prefix=self._settings.key_prefix)
