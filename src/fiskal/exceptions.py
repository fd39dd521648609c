"""
Error taxonomy shared by the coupon, pki and submission packages.

Public interface:
    - FiscalError: base class for everything raised by this project
    - EncodingError: coupon record violates its schema (fatal for that coupon)
    - SigningError: private key missing/invalid or the primitive rejected the input
    - CryptoFailure: key generation failed (fatal for the process)
    - CsrBuildError: identity fields rejected while building the CSR
    - TransportFailure / TransportFailureKind: submission did not get a 2xx answer
"""

from __future__ import annotations

from enum import Enum


class FiscalError(Exception):
    """Base class for fiscalization errors."""


class EncodingError(FiscalError, ValueError):
    """The coupon record cannot be encoded."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields: list[str] = fields or []


class SigningError(FiscalError):
    """The signer could not produce a signature."""


class CryptoFailure(FiscalError):
    """Key material could not be generated."""


class CsrBuildError(FiscalError, ValueError):
    """The certificate signing request could not be built from the identity."""


class TransportFailureKind(str, Enum):
    STATUS = "status"
    CONNECTION = "connection"
    TIMEOUT = "timeout"


# request timeout, too many requests
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class TransportFailure(FiscalError):
    """
    Submission failed at the transport level.

    Returned (not raised) by the submission client so callers can branch on
    `kind` without parsing messages.
    """

    def __init__(
        self,
        kind: TransportFailureKind,
        url: str,
        status_code: int | None = None,
        cause: str | None = None,
        body: str | None = None,
    ):
        self.kind = kind
        self.url = url
        self.status_code = status_code
        self.cause = cause
        self.body = body
        detail = f"status={status_code}" if status_code is not None else (cause or "")
        super().__init__(f"{kind.value} failure for {url}: {detail}")

    @property
    def retryable(self) -> bool:
        # 4xx means the envelope itself was refused, apart from timeout and throttling
        if self.kind is TransportFailureKind.STATUS and self.status_code is not None:
            return self.status_code >= 500 or self.status_code in RETRYABLE_CLIENT_STATUSES
        return True
