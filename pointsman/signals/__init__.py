"""
Pointsman signals - public event API.

All signals are sent after the surrounding transaction commits.

Emitted signals:
- points_credited: Emitted by services.ledger credits
- points_debited: Emitted by services.ledger debits
- reward_redeemed: Emitted by services.redemption.redeem()
- voucher_applied: Emitted by services.vouchers.apply_to_order()
"""

from django.dispatch import Signal

# Ledger signals
points_credited = Signal()  # sender=LoyaltyAccount, account, entry
points_debited = Signal()  # sender=LoyaltyAccount, account, entry

# Redemption signals
reward_redeemed = Signal()  # sender=RewardDefinition, reward, voucher, account
voucher_applied = Signal()  # sender=Voucher, voucher, order_id, discount
