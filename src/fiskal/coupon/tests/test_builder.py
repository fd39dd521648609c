"""
Tests for the sample coupon source and the record models.
"""

import pytest
from pydantic import ValidationError

from src.fiskal.coupon.builder import build_citizen_coupon, build_pos_coupon
from src.fiskal.coupon.schemas import CouponItem, CouponType, PosCoupon


def test_pos_coupon_totals_are_consistent():
    """Item, tax group and payment totals of the demo coupon add up."""
    coupon = build_pos_coupon(business_id=510600700, branch_id=1, pos_id=1, issued_at=1_700_000_000)

    assert coupon.total == sum(item.total for item in coupon.items)
    assert coupon.total == sum(p.amount for p in coupon.payments)
    assert coupon.total_tax == sum(g.tax_amount for g in coupon.tax_groups)
    assert coupon.total_no_tax + coupon.total_tax == coupon.total
    assert coupon.type is CouponType.Sale
    assert coupon.time == 1_700_000_000


def test_citizen_coupon_mirrors_pos_coupon():
    """The citizen coupon carries the ids and totals of its POS coupon."""
    pos = build_pos_coupon(business_id=7, branch_id=2, pos_id=3, coupon_id=42)
    citizen = build_citizen_coupon(pos)

    assert (citizen.business_id, citizen.pos_id, citizen.coupon_id) == (7, 3, 42)
    assert citizen.total == pos.total
    assert citizen.tax_groups == pos.tax_groups


def test_records_reject_unknown_fields():
    """Coupon records refuse fields they do not define."""
    with pytest.raises(ValidationError):
        CouponItem(name="x", price=1, unit="cope", quantity=1, total=1, tax_rate="C", discount=3)


def test_pos_coupon_requires_items():
    """A POS coupon without items does not validate."""
    with pytest.raises(ValidationError):
        PosCoupon(
            business_id=1,
            coupon_id=1,
            branch_id=1,
            location="Prishtine",
            operator_id="op",
            pos_id=1,
            time=1,
            items=[],
        )
