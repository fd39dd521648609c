"""
Request envelopes and acknowledgement of the fiscalization endpoints.

Public interface:
    - CitizenCouponRequest: body of POST /citizen/coupon
    - PosCouponRequest: body of POST /pos/coupon
    - Ack: 2xx answer of the service
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CitizenCouponRequest(BaseModel):
    citizen_id: int = Field(description="id of the citizen the QR code belongs to")
    qr_code: str = Field(description="<base64 coupon>|<signature>")


class PosCouponRequest(BaseModel):
    details: str = Field(description="base64 encoded PosCoupon protobuf")
    signature: str = Field(description="signature over the UTF-8 bytes of details")


class Ack(BaseModel):
    """Successful submission; the body is passed through unparsed."""

    url: str
    status_code: int
    body: str = ""
