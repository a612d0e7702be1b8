"""
Zero-Based Budget - Reconciliation Core

The ledger engine behind a "give every dollar a job" budgeting app.

DESIGN PRINCIPLES:
1. Balances are derived, never typed in
2. Ready to Assign is computed, never stored
3. Fail early, fail visibly
4. No silent corrections
5. Every mutation is auditable
6. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Zero-Based Budget Team"
