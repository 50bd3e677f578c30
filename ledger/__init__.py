"""
meumei Ledger - Source Package

The ledger consistency core of a small-business finance tracker:
accounts, incomes, expenses, credit-card invoices and yield tracking.

DESIGN PRINCIPLES:
1. Only the Ledger Engine mutates account balances
2. Every operation takes an aggregate and returns a new one
3. Dangling references are tolerated, never fatal
4. Persistence is the host's concern (write-through after each call)
"""

__version__ = "1.0.0"
__author__ = "meumei Team"
