from types import SimpleNamespace

import pytest

from storefront.config import VoucherState
from storefront.errors import InsufficientPoints
from storefront.loyalty import accrue_points, redeem_voucher, voucher_state
from storefront.pricing import compute_price


def _voucher(discount_percentage=0, points_required=0):
    return SimpleNamespace(discount_percentage=discount_percentage, points_required=points_required)


def test_price_without_voucher_is_unchanged():
    for base in (0, 1, 9_999, 100_000):
        assert compute_price(base) == base
        assert compute_price(base, None) == base


def test_price_with_twenty_percent_voucher():
    assert compute_price(100_000, _voucher(20)) == 80_000


def test_zero_and_full_discount_bounds():
    assert compute_price(12_345, _voucher(0)) == 12_345
    assert compute_price(12_345, _voucher(100)) == 0
    assert compute_price(0, _voucher(35)) == 0


def test_price_rounds_half_up():
    # 25 - 2.5 = 22.5 -> 23
    assert compute_price(25, _voucher(10)) == 23
    # 33 - 9.9 = 23.1 -> 23
    assert compute_price(33, _voucher(30)) == 23
    # 15 - 2.25 = 12.75 -> 13
    assert compute_price(15, _voucher(15)) == 13


@pytest.mark.parametrize("base", [1, 7, 99, 10_001, 123_457])
@pytest.mark.parametrize("pct", [0, 1, 33, 50, 99, 100])
def test_price_stays_within_zero_and_base(base, pct):
    price = compute_price(base, _voucher(pct))
    assert 0 <= price <= base


def test_pricing_and_accrual_are_repeatable():
    voucher = _voucher(15)
    assert compute_price(77_777, voucher) == compute_price(77_777, voucher)
    assert accrue_points(77_777) == accrue_points(77_777)


def test_accrue_points_floors_per_ten_thousand():
    assert accrue_points(10_000) == 1
    assert accrue_points(9_999) == 0
    assert accrue_points(25_000) == 2
    assert accrue_points(80_000) == 8
    assert accrue_points(0) == 0


def test_accrue_points_custom_unit():
    assert accrue_points(25_000, points_unit=1_000) == 25


def test_redeem_rejected_when_balance_too_low():
    with pytest.raises(InsufficientPoints) as exc_info:
        redeem_voucher(50, _voucher(points_required=100))
    assert exc_info.value.balance == 50
    assert exc_info.value.required == 100


def test_redeem_deducts_points():
    redemption = redeem_voucher(150, _voucher(points_required=100))
    assert (redemption.new_balance, redemption.points_spent) == (50, 100)
    assert redeem_voucher(100, _voucher(points_required=100)).new_balance == 0
    assert redeem_voucher(0, _voucher(points_required=0)).new_balance == 0


def test_voucher_state_follows_is_used():
    assert voucher_state(SimpleNamespace(is_used=False)) == VoucherState.AVAILABLE
    assert voucher_state(SimpleNamespace(is_used=True)) == VoucherState.USED
