from dataclasses import dataclass
from typing import Optional, Protocol

from storefront.config import VoucherState, settings
from storefront.errors import InsufficientPoints


class PointsPriced(Protocol):
    points_required: int


@dataclass(frozen=True)
class Redemption:
    new_balance: int
    points_spent: int


def accrue_points(total_price: int, points_unit: Optional[int] = None) -> int:
    """
    Points earned for a completed purchase: one per full points_unit spent.

    Always call with the final (post-discount) price.
    """
    unit = points_unit if points_unit is not None else settings.points_unit
    return total_price // unit


def redeem_voucher(current_balance: int, voucher: PointsPriced) -> Redemption:
    if current_balance < voucher.points_required:
        raise InsufficientPoints(current_balance, voucher.points_required)
    return Redemption(
        new_balance=current_balance - voucher.points_required,
        points_spent=voucher.points_required,
    )


def voucher_state(user_voucher) -> VoucherState:
    return VoucherState.USED if user_voucher.is_used else VoucherState.AVAILABLE
