"""
Lekka Kernel - multi-tenant double-entry ledger engine.

Core pipeline:
- Validation of proposed journals against accounting, tax and funds rules
- Ledger pairing of single-sided lines into double-entry pairs
- Document number reservation per tenant, type and fiscal year
- Content-hashed preview snapshots
- Exactly-once atomic commit of a confirmed preview
"""

__version__ = "0.1.0"
