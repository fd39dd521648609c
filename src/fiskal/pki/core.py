"""
Point-of-sale identity provisioning: key pair generation, CSR construction and PEM export.

Public interface:
    - KeyPair: P-256 key pair holder
    - generate_key_pair() -> KeyPair
    - build_csr(private_key, identity) -> x509.CertificateSigningRequest
    - private_key_to_pem(private_key) -> str
    - csr_to_pem(csr) -> str
    - identity_from_csr(csr) -> IdentityRequest

CSR subject layout registered with the authority:
    C=<country>, O=<business name>, OU=<branch id>, SERIALNUMBER=<nui>,
    CN=<nui>-<branch id>-<pos id>
"""

from __future__ import annotations

import re
import warnings
from dataclasses import dataclass, field

from cryptography import x509
from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat
from cryptography.x509.oid import NameOID
from loguru import logger

from src.fiskal.exceptions import CryptoFailure, CsrBuildError
from .schemas import IdentityRequest
from .signer import EcdsaSigner, load_private_key_pem

NUI_MAX = 999_999_999
_COUNTRY_RE = re.compile(r"^[A-Z]{2,3}$")


@dataclass(frozen=True)
class KeyPair:
    """EC P-256 key pair. The private key is kept out of repr so it never ends up in logs."""

    private_key: ec.EllipticCurvePrivateKey = field(repr=False)

    @classmethod
    def from_pem(cls, pem: str | bytes) -> "KeyPair":
        return cls(load_private_key_pem(pem))

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self.private_key.public_key()

    def private_key_pem(self) -> str:
        return private_key_to_pem(self.private_key)

    def public_key_pem(self) -> str:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    def signer(self) -> EcdsaSigner:
        return EcdsaSigner(self.private_key)


def generate_key_pair() -> KeyPair:
    """
    Generate a fresh P-256 key pair.
    :raises CryptoFailure: if the backend cannot produce a key.
    """
    try:
        private_key = ec.generate_private_key(ec.SECP256R1())
    except (InternalError, UnsupportedAlgorithm, ValueError) as e:
        logger.critical(f"Key generation failed: {e}")
        raise CryptoFailure(f"could not generate P-256 key: {e}") from e
    logger.info("Generated new P-256 key pair")
    return KeyPair(private_key)


def private_key_to_pem(private_key: ec.EllipticCurvePrivateKey) -> str:
    """Unencrypted PKCS#8 PEM of the private key."""
    return private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    ).decode("utf-8")


def csr_to_pem(csr: x509.CertificateSigningRequest) -> str:
    return csr.public_bytes(Encoding.PEM).decode("utf-8")


def _check_identity(identity: IdentityRequest) -> None:
    problems = []
    if not identity.country.strip():
        problems.append("country is empty")
    elif not _COUNTRY_RE.match(identity.country):
        problems.append(f"country must be 2 or 3 uppercase letters, got {identity.country!r}")
    if not identity.business_name.strip():
        problems.append("business_name is empty")
    if not 0 < identity.nui <= NUI_MAX:
        problems.append(f"nui must be between 1 and {NUI_MAX}, got {identity.nui}")
    if identity.branch_id <= 0:
        problems.append(f"branch_id must be positive, got {identity.branch_id}")
    if identity.pos_id <= 0:
        problems.append(f"pos_id must be positive, got {identity.pos_id}")
    if problems:
        raise CsrBuildError("; ".join(problems))


def _country_attribute(country: str) -> x509.NameAttribute:
    # the authority uses three letter codes, which x509 flags as non ISO 3166
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        return x509.NameAttribute(NameOID.COUNTRY_NAME, country, _validate=False)


def build_csr(
    private_key: ec.EllipticCurvePrivateKey | KeyPair,
    identity: IdentityRequest,
) -> x509.CertificateSigningRequest:
    """
    Build and sign the CSR the terminal submits for registration.
    :param private_key: the terminal's P-256 private key (or its KeyPair).
    :param identity: merchant and terminal identity.
    :raises CsrBuildError: if the identity or the key is not acceptable.
    """
    if isinstance(private_key, KeyPair):
        private_key = private_key.private_key
    if not isinstance(private_key, ec.EllipticCurvePrivateKey) or not isinstance(
        private_key.curve, ec.SECP256R1
    ):
        raise CsrBuildError("CSR must be signed with a P-256 private key")
    _check_identity(identity)

    subject = x509.Name(
        [
            _country_attribute(identity.country),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, identity.business_name),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, str(identity.branch_id)),
            x509.NameAttribute(NameOID.SERIAL_NUMBER, str(identity.nui)),
            x509.NameAttribute(NameOID.COMMON_NAME, identity.application_id),
        ]
    )
    try:
        csr = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(subject)
            .sign(private_key, hashes.SHA256())
        )
    except ValueError as e:
        raise CsrBuildError(f"could not sign CSR: {e}") from e
    logger.info(f"Built CSR for application id {identity.application_id}")
    return csr


def _single_value(name: x509.Name, oid: x509.ObjectIdentifier) -> str:
    attributes = name.get_attributes_for_oid(oid)
    if len(attributes) != 1:
        raise ValueError(f"CSR subject must carry exactly one {oid.dotted_string}")
    value = attributes[0].value
    return value if isinstance(value, str) else value.decode("utf-8")


def identity_from_csr(csr: x509.CertificateSigningRequest | str | bytes) -> IdentityRequest:
    """
    Decode the identity back from a CSR built by build_csr.
    :raises ValueError: if the CSR is not parseable or its subject does not follow the layout.
    """
    if isinstance(csr, (str, bytes)):
        pem = csr.encode("utf-8") if isinstance(csr, str) else csr
        csr = x509.load_pem_x509_csr(pem)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        subject = csr.subject

    application_id = _single_value(subject, NameOID.COMMON_NAME)
    parts = application_id.split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"unexpected application id {application_id!r}")
    nui, branch_id, pos_id = (int(p) for p in parts)
    if _single_value(subject, NameOID.SERIAL_NUMBER) != str(nui):
        raise ValueError("serial number does not match the application id")
    if _single_value(subject, NameOID.ORGANIZATIONAL_UNIT_NAME) != str(branch_id):
        raise ValueError("organizational unit does not match the application id")

    return IdentityRequest(
        country=_single_value(subject, NameOID.COUNTRY_NAME),
        business_name=_single_value(subject, NameOID.ORGANIZATION_NAME),
        nui=nui,
        branch_id=branch_id,
        pos_id=pos_id,
    )
