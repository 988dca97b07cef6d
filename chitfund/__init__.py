"""
Chit Fund Ledger - Source Package

Auction accounting for rotating savings funds ("chit funds") tracked
by a household finance assistant.

DESIGN PRINCIPLES:
1. All ledger arithmetic lives in one pure module
2. Validate before write, never after
3. Advisory warnings never block a save
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Chit Fund Ledger Team"
