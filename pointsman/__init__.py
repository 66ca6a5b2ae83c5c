"""
Django Pointsman - Loyalty points ledger and redemption.

Usage:
    from pointsman import PointsService
    from pointsman.gates import Gates, GateResult

    PointsService.on_signup("USER-1")
    PointsService.on_order_completed("USER-1", "ORD-1", "60.00")
    result = PointsService.redeem("USER-1", reward_id=3)
    discount = PointsService.apply_voucher(result.voucher.code, "ORD-2", "40.00")
"""


def __getattr__(name):
    if name == "PointsService":
        from pointsman.service import PointsService

        return PointsService
    if name == "Gates":
        from pointsman.gates import Gates

        return Gates
    if name == "GateResult":
        from pointsman.gates import GateResult

        return GateResult
    if name == "PointsmanError":
        from pointsman.exceptions import PointsmanError

        return PointsmanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["PointsService", "Gates", "GateResult", "PointsmanError"]
__version__ = "0.1.0"
