"""
Provision the terminal identity and submit a sample POS and citizen coupon.

Public interface:
    - identity_from_settings(settings) -> IdentityRequest
    - load_or_generate_key_pair(settings) -> KeyPair
    - export_identity(key_pair, csr_pem, settings) -> None
    - run(settings, http_client=None) -> dict[str, Ack | TransportFailure]
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import httpx
from loguru import logger

from src.fiskal.config import Config, config
from src.fiskal.coupon.builder import build_citizen_coupon, build_pos_coupon
from src.fiskal.exceptions import TransportFailure
from src.fiskal.pki.core import KeyPair, build_csr, csr_to_pem, generate_key_pair
from src.fiskal.pki.schemas import IdentityRequest
from src.fiskal.submission.client import FiscalizationClient
from src.fiskal.submission.schemas import Ack
from src.fiskal.submission.services import send_citizen_coupon, send_pos_coupon

PRIVATE_KEY_FILE_NAME = "private_key.pem"
CSR_FILE_NAME = "pos.csr"


def identity_from_settings(settings: Config = config) -> IdentityRequest:
    return IdentityRequest(
        country=settings.country,
        business_name=settings.business_name,
        nui=settings.nui,
        branch_id=settings.branch_id,
        pos_id=settings.pos_id,
    )


def _existing_key_path(settings: Config) -> Path | None:
    if settings.private_key_file:
        return Path(settings.private_key_file)
    if settings.output_dir:
        path = Path(settings.output_dir) / PRIVATE_KEY_FILE_NAME
        if path.exists():
            return path
    return None


def load_or_generate_key_pair(settings: Config = config) -> KeyPair:
    """
    Reuse the key in `private_key_file`, or the one exported earlier to `output_dir`;
    generate a new one only when neither exists.
    """
    path = _existing_key_path(settings)
    if path is not None:
        logger.info(f"Loading private key from {path}")
        return KeyPair.from_pem(path.read_text(encoding="utf-8"))
    return generate_key_pair()


def export_identity(key_pair: KeyPair, csr_pem: str, settings: Config = config) -> None:
    """
    Hand the key and CSR over for registration: written to `output_dir` when set,
    printed to stdout otherwise.
    :raises FileExistsError: if `output_dir` already holds a private key.
    """
    if settings.output_dir:
        out = Path(settings.output_dir)
        out.mkdir(parents=True, exist_ok=True)
        key_path = out / PRIVATE_KEY_FILE_NAME
        try:
            fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            raise FileExistsError(
                f"{key_path} already exists, refusing to replace a key that may be registered"
            ) from None
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(key_pair.private_key_pem())
        (out / CSR_FILE_NAME).write_text(csr_pem, encoding="utf-8")
        logger.info(f"Private key and CSR written to {out}")
        return

    print("Generated private key:")
    print(key_pair.private_key_pem())
    print("Generated CSR:")
    print(csr_pem)


async def run(
    settings: Config = config,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Ack | TransportFailure]:
    """
    One full cycle: key + CSR, then the POS and citizen submissions side by side.
    A failed submission of one kind does not stop the other.
    """
    identity = identity_from_settings(settings)
    provisioned = _existing_key_path(settings) is not None
    key_pair = load_or_generate_key_pair(settings)
    csr_pem = csr_to_pem(build_csr(key_pair, identity))
    if not provisioned:
        export_identity(key_pair, csr_pem, settings)

    signer = key_pair.signer()
    pos_coupon = build_pos_coupon(
        business_id=identity.nui,
        branch_id=identity.branch_id,
        pos_id=identity.pos_id,
    )
    citizen_coupon = build_citizen_coupon(pos_coupon)

    logger.info(f"Submitting coupons to the {settings.environment.value} environment")
    async with FiscalizationClient(
        settings.environment, timeout=settings.request_timeout, http_client=http_client
    ) as client:
        pos_result, citizen_result = await asyncio.gather(
            send_pos_coupon(client, pos_coupon, signer),
            send_citizen_coupon(client, citizen_coupon, signer, citizen_id=settings.citizen_id),
        )
    return {"pos": pos_result, "citizen": citizen_result}
