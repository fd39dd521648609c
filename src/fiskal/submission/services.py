"""
Sign-and-send operations composed from the coupon pipeline and the client.
Encoding and signing errors propagate before any request is made; transport
failures come back as values.
"""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from src.fiskal.config import config
from src.fiskal.coupon.core import sign_citizen_coupon, sign_pos_coupon
from src.fiskal.coupon.schemas import CitizenCoupon, PosCoupon
from src.fiskal.exceptions import TransportFailure
from src.fiskal.pki.signer import Signer
from .client import FiscalizationClient
from .schemas import Ack, CitizenCouponRequest, PosCouponRequest


async def send_citizen_coupon(
    client: FiscalizationClient,
    coupon: CitizenCoupon | Mapping,
    signer: Signer,
    citizen_id: int | None = None,
    deadline: float | None = None,
) -> Ack | TransportFailure:
    """Sign the citizen coupon and submit its QR code."""
    qr_code = sign_citizen_coupon(coupon, signer)
    request = CitizenCouponRequest(
        citizen_id=config.citizen_id if citizen_id is None else citizen_id,
        qr_code=qr_code,
    )
    result = await client.submit(request, deadline=deadline)
    if isinstance(result, Ack):
        logger.info("Qr code sent successfully")
    return result


async def send_pos_coupon(
    client: FiscalizationClient,
    coupon: PosCoupon | Mapping,
    signer: Signer,
    deadline: float | None = None,
) -> Ack | TransportFailure:
    """Sign the POS coupon and submit it with its detached signature."""
    details, signature = sign_pos_coupon(coupon, signer)
    result = await client.submit(PosCouponRequest(details=details, signature=signature), deadline=deadline)
    if isinstance(result, Ack):
        logger.info("Pos coupon sent successfully")
    return result
