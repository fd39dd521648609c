"""
Coupon record models (pydantic).

Field names and numbers follow the authority's protobuf schema, see proto.py.
Monetary amounts are integer minor units (cents).

Public interface:
    - CouponType, PaymentType
    - TaxGroup, CouponItem, Payment
    - CitizenCoupon, PosCoupon
"""

from __future__ import annotations

from enum import IntEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

UINT64_MAX = 2**64 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

Id = Annotated[int, Field(gt=0, le=UINT64_MAX)]
Uint64 = Annotated[int, Field(ge=0, le=UINT64_MAX)]
Int64 = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]
Timestamp = Annotated[int, Field(gt=0, le=INT64_MAX, description="unix seconds")]
Text = Annotated[str, Field(min_length=1)]


class CouponType(IntEnum):
    Sale = 0
    Return = 1
    Cancel = 2


class PaymentType(IntEnum):
    Cash = 0
    CreditCard = 1
    Voucher = 2
    Cheque = 3
    CryptoCurrency = 4
    Other = 5


class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid", revalidate_instances="always")


class TaxGroup(_Record):
    tax_rate: Text = Field(description="tax group label, e.g. C")
    total_for_tax: Int64
    tax_amount: Int64


class CouponItem(_Record):
    name: Text
    price: Int64
    unit: Text
    quantity: Int64
    total: Int64
    tax_rate: Text
    type: str = ""


class Payment(_Record):
    type: PaymentType
    amount: Int64


class CitizenCoupon(_Record):
    """Citizen-facing part of a receipt, carried in the QR code."""

    business_id: Id
    pos_id: Id
    coupon_id: Id
    type: CouponType = CouponType.Sale
    time: Timestamp
    tax_groups: list[TaxGroup] = Field(default_factory=list)
    total_tax: Int64 = 0
    total_no_tax: Int64 = 0
    total: Int64 = 0


class PosCoupon(_Record):
    """Full point-of-sale receipt as reported by the terminal."""

    business_id: Id
    coupon_id: Id
    branch_id: Id
    location: Text
    operator_id: Text
    pos_id: Id
    application_id: Uint64 = 0
    verification_no: Uint64 = 0
    type: CouponType = CouponType.Sale
    time: Timestamp
    items: list[CouponItem] = Field(min_length=1)
    payments: list[Payment] = Field(default_factory=list)
    total: Int64 = 0
    tax_groups: list[TaxGroup] = Field(default_factory=list)
    total_tax: Int64 = 0
    total_no_tax: Int64 = 0
    total_discount: Int64 = 0
