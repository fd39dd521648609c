"""
Coupon signers.

Signature text format: standard base64 (RFC 4648 alphabet, with padding) of the
ASN.1 DER encoded ECDSA signature. The authority verifies exactly this format.

Public interface:
    - Signer: abstract signer, `sign_bytes(data) -> str`
    - EcdsaSigner: ECDSA P-256 / SHA-256 implementation
    - load_private_key_pem(pem) -> ec.EllipticCurvePrivateKey
    - verify_signature(public_key, data, signature_text) -> bool
    - BASE64_ALPHABET: characters a base64 text may contain
"""

from __future__ import annotations

import base64
import string
from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from src.fiskal.exceptions import SigningError

BASE64_ALPHABET = frozenset(string.ascii_letters + string.digits + "+/=")


class Signer(ABC):
    """Produces a text signature over arbitrary bytes."""

    # characters the signature text can contain
    alphabet: frozenset[str] = BASE64_ALPHABET

    @abstractmethod
    def sign_bytes(self, data: bytes) -> str:
        raise NotImplementedError


def load_private_key_pem(pem: str | bytes) -> ec.EllipticCurvePrivateKey:
    """
    Load an unencrypted PEM private key and check that it is a P-256 key.
    :raises SigningError: if the PEM is malformed or holds another kind of key.
    """
    data = pem.encode("utf-8") if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError(f"invalid private key PEM: {e}") from e
    _check_key(key)
    return key


def _check_key(key: object) -> None:
    if key is None:
        raise SigningError("no private key available")
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise SigningError(f"expected an EC private key, got {type(key).__name__}")
    if not isinstance(key.curve, ec.SECP256R1):
        raise SigningError(f"expected a P-256 key, got curve {key.curve.name}")


class EcdsaSigner(Signer):
    """
    ECDSA over P-256 with a SHA-256 pre-hash.

    The key is only read, so one instance can be shared by concurrent callers.
    Signatures over the same input differ between calls (random nonce) but all verify.
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey | None):
        _check_key(private_key)
        self._private_key = private_key

    @classmethod
    def from_pem(cls, pem: str | bytes) -> "EcdsaSigner":
        return cls(load_private_key_pem(pem))

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._private_key.public_key()

    def sign_bytes(self, data: bytes) -> str:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise SigningError(f"can only sign bytes, got {type(data).__name__}")
        try:
            signature = self._private_key.sign(bytes(data), ec.ECDSA(hashes.SHA256()))
        except (ValueError, TypeError) as e:
            raise SigningError(f"signing failed: {e}") from e
        return base64.b64encode(signature).decode("ascii")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(curve={self._private_key.curve.name})"


def verify_signature(
    public_key: ec.EllipticCurvePublicKey | str | bytes,
    data: bytes,
    signature_text: str,
) -> bool:
    """
    Check a signature produced by EcdsaSigner.
    :param public_key: the public key object, or its PEM text.
    :param data: the exact bytes that were signed.
    :param signature_text: base64 DER signature.
    :return: True when valid, False for any malformed input or mismatch.
    """
    try:
        if isinstance(public_key, (str, bytes)):
            pem = public_key.encode("utf-8") if isinstance(public_key, str) else public_key
            public_key = serialization.load_pem_public_key(pem)
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            return False
        signature = base64.b64decode(signature_text, validate=True)
        public_key.verify(signature, data, ec.ECDSA(hashes.SHA256()))
        return True
    except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm):
        return False
