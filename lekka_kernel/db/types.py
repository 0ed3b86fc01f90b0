"""
Module: lekka_kernel.db.types
Responsibility: Annotated column aliases shared by every model so that
    amounts, hashes and identifiers have one definition system-wide.
Architecture position: Kernel > DB.  May be imported by models/, selectors/
    and services/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money is an integer count of minor currency units (paise, cents).
      No float and no Decimal column ever holds an amount.
"""

from typing import Annotated

from sqlalchemy import BigInteger, String

# Amount in minor currency units
MinorUnits = Annotated[int, BigInteger]

# Tenant identifier; "GLOBAL" is reserved for the shared chart tier
TenantId = Annotated[str, String(64)]

# SHA-256 hash as hex string (64 characters)
PayloadHash = Annotated[str, String(64)]

# Short identifier strings (codes, prefixes, statuses)
ShortCode = Annotated[str, String(50)]

# Ledger and party names
Name = Annotated[str, String(200)]

# Narrations and free text
LongText = Annotated[str, String(2000)]

GLOBAL_TENANT = "GLOBAL"
