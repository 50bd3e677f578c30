"""Configuration package."""

from ledger.config.settings import (
    DEFAULT_ACCOUNT_TYPES,
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    LedgerSettings,
    get_settings,
)

__all__ = [
    "DEFAULT_ACCOUNT_TYPES",
    "DEFAULT_EXPENSE_CATEGORIES",
    "DEFAULT_INCOME_CATEGORIES",
    "LedgerSettings",
    "get_settings",
]
