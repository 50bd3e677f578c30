"""Query package."""

from ledger.queries.executor import LedgerQueries

__all__ = ["LedgerQueries"]
