"""
Sample coupon source used by the demo flow in main.py.

Real terminals fill coupons from their sales data; these builders only produce
a consistent receipt (three items, one cash and one card payment) so the
signing and submission path can be exercised against the test environment.
"""

from __future__ import annotations

import time

from .schemas import (
    CitizenCoupon,
    CouponItem,
    CouponType,
    Payment,
    PaymentType,
    PosCoupon,
    TaxGroup,
)

_ITEMS = [
    # name, unit price (cents), unit, quantity, tax group
    ("Uje Rugove", 150, "cope", 2, "C"),
    ("Buke", 50, "cope", 3, "D"),
    ("Qumesht", 250, "liter", 1, "D"),
]
_TAX_RATES = {"C": 18, "D": 8}


def _items() -> list[CouponItem]:
    return [
        CouponItem(
            name=name,
            price=price,
            unit=unit,
            quantity=quantity,
            total=price * quantity,
            tax_rate=group,
            type="TT",
        )
        for name, price, unit, quantity, group in _ITEMS
    ]


def _tax_groups(items: list[CouponItem]) -> list[TaxGroup]:
    groups = []
    for group, rate in sorted(_TAX_RATES.items()):
        gross = sum(item.total for item in items if item.tax_rate == group)
        if not gross:
            continue
        # prices include VAT
        tax = round(gross * rate / (100 + rate))
        groups.append(TaxGroup(tax_rate=group, total_for_tax=gross - tax, tax_amount=tax))
    return groups


def build_pos_coupon(
    business_id: int,
    branch_id: int,
    pos_id: int,
    coupon_id: int = 1,
    location: str = "Prishtine",
    operator_id: str = "Kasier 1",
    issued_at: int | None = None,
) -> PosCoupon:
    items = _items()
    tax_groups = _tax_groups(items)
    total = sum(item.total for item in items)
    total_tax = sum(g.tax_amount for g in tax_groups)
    card = 200
    return PosCoupon(
        business_id=business_id,
        coupon_id=coupon_id,
        branch_id=branch_id,
        location=location,
        operator_id=operator_id,
        pos_id=pos_id,
        application_id=pos_id,
        verification_no=coupon_id,
        type=CouponType.Sale,
        time=issued_at or int(time.time()),
        items=items,
        payments=[
            Payment(type=PaymentType.Cash, amount=total - card),
            Payment(type=PaymentType.CreditCard, amount=card),
        ],
        total=total,
        tax_groups=tax_groups,
        total_tax=total_tax,
        total_no_tax=total - total_tax,
        total_discount=0,
    )


def build_citizen_coupon(pos_coupon: PosCoupon) -> CitizenCoupon:
    """Citizen view of a POS coupon: identifiers, taxes and totals, without items."""
    return CitizenCoupon(
        business_id=pos_coupon.business_id,
        pos_id=pos_coupon.pos_id,
        coupon_id=pos_coupon.coupon_id,
        type=pos_coupon.type,
        time=pos_coupon.time,
        tax_groups=pos_coupon.tax_groups,
        total_tax=pos_coupon.total_tax,
        total_no_tax=pos_coupon.total_no_tax,
        total=pos_coupon.total,
    )
