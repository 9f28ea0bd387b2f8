from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol


class Discount(Protocol):
    discount_percentage: int


def compute_price(base_price: int, voucher: Optional[Discount] = None) -> int:
    """
    Return the chargeable amount for base_price, applying the voucher's percentage discount if given.

    Halves round up, so 12.5 -> 13. The percentage is trusted to be within 0-100.
    """
    if voucher is None:
        return base_price
    base = Decimal(base_price)
    discounted = base - base * Decimal(voucher.discount_percentage) / 100
    return int(discounted.quantize(Decimal(1), rounding=ROUND_HALF_UP))
