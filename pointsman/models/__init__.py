"""Pointsman models.

Ownership:
- services.ledger: LoyaltyAccount, LedgerEntry
- services.catalog: RewardDefinition (read + redemption counter only)
- services.vouchers: Voucher
- adapters.program_db: LoyaltyProgram (read only)
"""

from pointsman.models.program import LoyaltyProgram
from pointsman.models.account import LoyaltyAccount
from pointsman.models.ledger_entry import LedgerEntry, EntryType, CREDIT_TYPES, DEBIT_TYPES
from pointsman.models.reward import RewardDefinition, DiscountType
from pointsman.models.voucher import Voucher, VoucherStatus

__all__ = [
    # Configuration
    "LoyaltyProgram",
    # Ledger
    "LoyaltyAccount",
    "LedgerEntry",
    "EntryType",
    "CREDIT_TYPES",
    "DEBIT_TYPES",
    # Catalog
    "RewardDefinition",
    "DiscountType",
    # Vouchers
    "Voucher",
    "VoucherStatus",
]
