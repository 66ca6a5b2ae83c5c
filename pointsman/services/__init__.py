"""Pointsman services.

- calculator: points owed for an order (pure)
- ledger: balances and the points log
- catalog: rewards and redemption counters
- vouchers: issue, apply and list vouchers
- redemption: points -> voucher in one transaction
- earning: order and signup awards
"""

from pointsman.services import calculator
from pointsman.services import ledger
from pointsman.services import catalog
from pointsman.services import vouchers
from pointsman.services import redemption
from pointsman.services import earning

__all__ = ["calculator", "ledger", "catalog", "vouchers", "redemption", "earning"]
