"""
Canonical encoding and signing of fiscal coupons.

The signing input is a two stage framing that the authority recomputes:

    details   = base64(protobuf(record))
    signature = signer.sign_bytes(utf8(details))

Citizen coupons travel as one QR string `details|signature`, POS coupons as two
separate fields.

Public interface:
    - QR_DELIMITER
    - serialize(record, record_type=None) -> bytes
    - sign_citizen_coupon(coupon, signer) -> str
    - sign_pos_coupon(coupon, signer) -> tuple[str, str]
    - split_qr_code(qr_code) -> tuple[str, str]
    - decode_details(details, record_type) -> Message
    - verify_signed_coupon(details, signature, public_key) -> bool

Internal helpers:
    - _validate(record, record_type)
    - _sign_details(record, record_type, signer)
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from typing import Any, TypeVar

from google.protobuf.message import DecodeError, Message
from loguru import logger
from pydantic import ValidationError

from src.fiskal.exceptions import EncodingError, SigningError
from src.fiskal.pki.signer import BASE64_ALPHABET, Signer, verify_signature
from .proto import message_class_for, to_message
from .schemas import CitizenCoupon, PosCoupon

QR_DELIMITER = "|"

if QR_DELIMITER in BASE64_ALPHABET:
    raise RuntimeError(f"QR delimiter {QR_DELIMITER!r} collides with the base64 alphabet")

_RECORD_TYPES = (CitizenCoupon, PosCoupon)

R = TypeVar("R", CitizenCoupon, PosCoupon)


def _validate(record: Any, record_type: type[R]) -> R:
    if record_type not in _RECORD_TYPES:
        raise EncodingError(f"unknown coupon kind {getattr(record_type, '__name__', record_type)}")
    if not isinstance(record, (record_type, Mapping)):
        raise EncodingError(f"expected {record_type.__name__}, got {type(record).__name__}")
    try:
        return record_type.model_validate(record)
    except ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise EncodingError(
            f"{record_type.__name__} violates its schema: {', '.join(fields)}", fields
        ) from e


def serialize(record: CitizenCoupon | PosCoupon | Mapping, record_type: type | None = None) -> bytes:
    """
    Deterministic protobuf encoding of a coupon.
    :param record: a coupon model, or a mapping of its fields.
    :param record_type: CitizenCoupon or PosCoupon; required when record is a mapping.
    :raises EncodingError: if the record does not satisfy its schema.
    """
    if record_type is None:
        if isinstance(record, Mapping):
            raise EncodingError("coupon kind is required to encode a mapping")
        record_type = type(record)
    validated = _validate(record, record_type)
    return to_message(validated).SerializeToString(deterministic=True)


def _ensure_delimiter_free(signer: Signer) -> None:
    if QR_DELIMITER in signer.alphabet:
        raise SigningError(f"{type(signer).__name__} may emit the QR delimiter {QR_DELIMITER!r}")


def _sign_details(record: Any, record_type: type, signer: Signer) -> tuple[str, str]:
    details = base64.b64encode(serialize(record, record_type)).decode("ascii")
    signature = signer.sign_bytes(details.encode("utf-8"))
    logger.debug(f"Coupon   : {details}")
    logger.debug(f"signature: {signature}")
    return details, signature


def sign_citizen_coupon(coupon: CitizenCoupon | Mapping, signer: Signer) -> str:
    """
    Sign a citizen coupon and return the string to encode in the QR code.
    :raises EncodingError: invalid coupon.
    :raises SigningError: signer failure.
    """
    _ensure_delimiter_free(signer)
    details, signature = _sign_details(coupon, CitizenCoupon, signer)
    qr_code = f"{details}{QR_DELIMITER}{signature}"
    logger.debug(f"qr code  : {qr_code}")
    return qr_code


def sign_pos_coupon(coupon: PosCoupon | Mapping, signer: Signer) -> tuple[str, str]:
    """
    Sign a POS coupon.
    :return: (base64 coupon, signature) as two separate fields.
    :raises EncodingError: invalid coupon.
    :raises SigningError: signer failure.
    """
    _ensure_delimiter_free(signer)
    return _sign_details(coupon, PosCoupon, signer)


def split_qr_code(qr_code: str) -> tuple[str, str]:
    """Split a QR payload on its first delimiter into (details, signature)."""
    details, sep, signature = qr_code.partition(QR_DELIMITER)
    if not sep or not details or not signature:
        raise ValueError("QR code must be '<details>|<signature>'")
    return details, signature


def decode_details(details: str, record_type: type) -> Message:
    """
    Decode the base64 details field back into its protobuf message.
    :raises ValueError: if the text is not base64 or not a valid message.
    """
    message_class = message_class_for(record_type)
    try:
        return message_class.FromString(base64.b64decode(details, validate=True))
    except (binascii.Error, DecodeError) as e:
        raise ValueError(f"cannot decode {record_type.__name__} details: {e}") from e


def verify_signed_coupon(details: str, signature: str, public_key) -> bool:
    """Check that `signature` was made over the UTF-8 bytes of `details`."""
    return verify_signature(public_key, details.encode("utf-8"), signature)
