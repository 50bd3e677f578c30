"""
Configuration Management for the Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here. Every setting can be overridden
with a LEDGER_-prefixed environment variable or a .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ACCOUNT_TYPES = [
    "Conta Bancária",
    "Carteira Digital",
    "Conta Digital Internacional",
    "Rendimentos",
    "Dinheiro (Espécie)",
]

DEFAULT_EXPENSE_CATEGORIES = [
    "Alimentação",
    "Assinatura",
    "Cenário",
    "Equipamentos",
    "Logística",
    "Materiais",
    "Plantas",
    "Revelação",
    "Tráfego Pago",
]

DEFAULT_INCOME_CATEGORIES = [
    "Serviço",
    "Venda de Produto",
    "Salário",
    "Rendimento",
    "Reembolso",
    "Outros",
]


class LedgerSettings(BaseSettings):
    """
    Main ledger settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Storage
    storage_dir: Path = Field(
        default=Path(".ledger_data"),
        description="Directory holding one JSON document per storage key"
    )
    key_prefix: str = Field(
        default="meumei_",
        description="Prefix prepended to every storage key"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level for ledger logs"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False = human readable console output)"
    )
    audit_max_events: int = Field(
        default=5000,
        gt=0,
        description="Newest audit events kept in the persisted trail"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1_000_000.0,
        gt=0,
        description="Amounts above this are flagged for review (warning only)"
    )

    # Seed collections used when nothing is stored yet
    default_account_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ACCOUNT_TYPES)
    )
    default_expense_categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXPENSE_CATEGORIES)
    )
    default_income_categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INCOME_CATEGORIES)
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept standard logging level names."""
        level = v.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return level


@lru_cache()
def get_settings() -> LedgerSettings:
    """
    Get ledger settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return LedgerSettings()
