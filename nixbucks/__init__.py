"""
NixBucks - Budget Engine

Records recurring subscriptions, one-off expenses and income sources for a
single user, and turns them into balances, monthly summaries and forward
projections.

DESIGN PRINCIPLES:
1. Money is exact: integer cents, never floats
2. Fail early, fail visibly; no silent corrections to amounts
3. A hand-edited profile never becomes unreadable over one bad entry
4. Saves are atomic
5. Storage layer is swappable
"""

from nixbucks.log import configure_logging

configure_logging()

__version__ = "0.2.0"
__author__ = "NixBucks Team"
