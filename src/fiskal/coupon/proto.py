"""
Protobuf schema of the fiscal coupons, built at import time.

The authority decodes coupons with the `fiskalizimi` proto3 package below, so the
field numbers and types are an external contract:

    enum CouponType  { Sale = 0; Return = 1; Cancel = 2; }
    enum PaymentType { Cash = 0; CreditCard = 1; Voucher = 2; Cheque = 3; CryptoCurrency = 4; Other = 5; }
    message TaxGroup      { string tax_rate = 1; int64 total_for_tax = 2; int64 tax_amount = 3; }
    message CouponItem    { string name = 1; int64 price = 2; string unit = 3; int64 quantity = 4;
                            int64 total = 5; string tax_rate = 6; string type = 7; }
    message Payment       { PaymentType type = 1; int64 amount = 2; }
    message CitizenCoupon { uint64 business_id = 1; uint64 pos_id = 2; uint64 coupon_id = 3;
                            CouponType type = 4; int64 time = 5; repeated TaxGroup tax_groups = 6;
                            int64 total_tax = 7; int64 total_no_tax = 8; int64 total = 9; }
    message PosCoupon     { uint64 business_id = 1; uint64 coupon_id = 2; uint64 branch_id = 3;
                            string location = 4; string operator_id = 5; uint64 pos_id = 6;
                            uint64 application_id = 7; uint64 verification_no = 8; CouponType type = 9;
                            int64 time = 10; repeated CouponItem items = 11; repeated Payment payments = 12;
                            int64 total = 13; repeated TaxGroup tax_groups = 14; int64 total_tax = 15;
                            int64 total_no_tax = 16; int64 total_discount = 17; }

Public interface:
    - CitizenCouponMessage, PosCouponMessage: generated message classes
    - message_class_for(record_type) -> type[Message]
    - to_message(record) -> Message

Internal helpers:
    - _file_descriptor_proto()
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import Message

from .schemas import CitizenCoupon, CouponType, PaymentType, PosCoupon

PACKAGE = "fiskalizimi"

_F = descriptor_pb2.FieldDescriptorProto
_STRING = _F.TYPE_STRING
_INT64 = _F.TYPE_INT64
_UINT64 = _F.TYPE_UINT64
_ENUM = _F.TYPE_ENUM
_MESSAGE = _F.TYPE_MESSAGE

_ENUMS = {
    "CouponType": CouponType,
    "PaymentType": PaymentType,
}

# message -> [(field, number, type, referenced type, repeated)]
_MESSAGES = {
    "TaxGroup": [
        ("tax_rate", 1, _STRING, None, False),
        ("total_for_tax", 2, _INT64, None, False),
        ("tax_amount", 3, _INT64, None, False),
    ],
    "CouponItem": [
        ("name", 1, _STRING, None, False),
        ("price", 2, _INT64, None, False),
        ("unit", 3, _STRING, None, False),
        ("quantity", 4, _INT64, None, False),
        ("total", 5, _INT64, None, False),
        ("tax_rate", 6, _STRING, None, False),
        ("type", 7, _STRING, None, False),
    ],
    "Payment": [
        ("type", 1, _ENUM, "PaymentType", False),
        ("amount", 2, _INT64, None, False),
    ],
    "CitizenCoupon": [
        ("business_id", 1, _UINT64, None, False),
        ("pos_id", 2, _UINT64, None, False),
        ("coupon_id", 3, _UINT64, None, False),
        ("type", 4, _ENUM, "CouponType", False),
        ("time", 5, _INT64, None, False),
        ("tax_groups", 6, _MESSAGE, "TaxGroup", True),
        ("total_tax", 7, _INT64, None, False),
        ("total_no_tax", 8, _INT64, None, False),
        ("total", 9, _INT64, None, False),
    ],
    "PosCoupon": [
        ("business_id", 1, _UINT64, None, False),
        ("coupon_id", 2, _UINT64, None, False),
        ("branch_id", 3, _UINT64, None, False),
        ("location", 4, _STRING, None, False),
        ("operator_id", 5, _STRING, None, False),
        ("pos_id", 6, _UINT64, None, False),
        ("application_id", 7, _UINT64, None, False),
        ("verification_no", 8, _UINT64, None, False),
        ("type", 9, _ENUM, "CouponType", False),
        ("time", 10, _INT64, None, False),
        ("items", 11, _MESSAGE, "CouponItem", True),
        ("payments", 12, _MESSAGE, "Payment", True),
        ("total", 13, _INT64, None, False),
        ("tax_groups", 14, _MESSAGE, "TaxGroup", True),
        ("total_tax", 15, _INT64, None, False),
        ("total_no_tax", 16, _INT64, None, False),
        ("total_discount", 17, _INT64, None, False),
    ],
}


def _file_descriptor_proto() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name=f"{PACKAGE}/coupon.proto", package=PACKAGE, syntax="proto3"
    )
    for enum_name, enum_cls in _ENUMS.items():
        enum = fdp.enum_type.add(name=enum_name)
        for member in enum_cls:
            enum.value.add(name=member.name, number=int(member))
    for message_name, fields in _MESSAGES.items():
        message = fdp.message_type.add(name=message_name)
        for name, number, field_type, type_name, repeated in fields:
            field = message.field.add(
                name=name,
                number=number,
                type=field_type,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if type_name:
                field.type_name = f".{PACKAGE}.{type_name}"
    return fdp


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_file_descriptor_proto().SerializeToString())

CitizenCouponMessage = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.CitizenCoupon")
)
PosCouponMessage = message_factory.GetMessageClass(
    _POOL.FindMessageTypeByName(f"{PACKAGE}.PosCoupon")
)

_MESSAGE_CLASSES: dict[type, type[Message]] = {
    CitizenCoupon: CitizenCouponMessage,
    PosCoupon: PosCouponMessage,
}


def message_class_for(record_type: type) -> type[Message]:
    try:
        return _MESSAGE_CLASSES[record_type]
    except KeyError:
        raise TypeError(f"no protobuf schema for {record_type.__name__}") from None


def to_message(record: CitizenCoupon | PosCoupon) -> Message:
    """Copy a validated record into its protobuf message."""
    message = message_class_for(type(record))()
    json_format.ParseDict(record.model_dump(mode="json"), message)
    return message
