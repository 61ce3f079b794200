"""
Jaap Ledger - Source Package

A personal counter ledger: log a daily jaap count with notes, and keep
lifetime totals, yearly subtotals and crore milestones up to date.

DESIGN PRINCIPLES:
1. Totals are always derived, never stored
2. Milestones found automatically are never rewritten
3. A failed action leaves the last good view on screen
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Jaap Ledger Team"
