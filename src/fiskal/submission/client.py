"""
HTTP client of the fiscalization service.

Each submission is a single POST: no retry, no backoff. Any 2xx answer is an Ack;
every other outcome (HTTP status, connection error, timeout or expired caller
deadline) is returned as a TransportFailure value so the caller decides whether
to retry.

Public interface:
    - FiscalizationClient
        - endpoint_for(envelope) -> str
        - submit(envelope, endpoint=None, deadline=None) -> Ack | TransportFailure
"""

from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from src.fiskal.config import Environment, config
from src.fiskal.exceptions import TransportFailure, TransportFailureKind
from .schemas import Ack, CitizenCouponRequest, PosCouponRequest

Envelope = CitizenCouponRequest | PosCouponRequest


class FiscalizationClient:
    """
    Submits signed coupons to the environment's endpoints.

    Use as `async with FiscalizationClient(...)` to share one connection pool
    across submissions, or pass an existing httpx.AsyncClient.
    """

    def __init__(
        self,
        environment: Environment | None = None,
        *,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.environment = environment or config.environment
        self.timeout = timeout if timeout is not None else config.request_timeout
        self._http_client = http_client
        self._owns_client = False

    async def __aenter__(self) -> "FiscalizationClient":
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_client = False

    def endpoint_for(self, envelope: Envelope) -> str:
        if isinstance(envelope, CitizenCouponRequest):
            return self.environment.citizen_coupon_url
        if isinstance(envelope, PosCouponRequest):
            return self.environment.pos_coupon_url
        raise TypeError(f"no endpoint for {type(envelope).__name__}")

    async def _post(self, url: str, payload: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, json=payload)

    async def submit(
        self,
        envelope: Envelope,
        endpoint: str | None = None,
        deadline: float | None = None,
    ) -> Ack | TransportFailure:
        """
        POST the envelope once and classify the answer.
        :param envelope: citizen or POS request body.
        :param endpoint: override of the environment's URL for this envelope kind.
        :param deadline: seconds the whole call may take; None means only the client timeout applies.
        """
        url = endpoint or self.endpoint_for(envelope)
        try:
            response = await asyncio.wait_for(self._post(url, envelope.model_dump()), timeout=deadline)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            failure = TransportFailure(
                TransportFailureKind.TIMEOUT, url, cause=str(e) or f"deadline of {deadline}s expired"
            )
        except httpx.HTTPError as e:
            failure = TransportFailure(
                TransportFailureKind.CONNECTION, url, cause=str(e) or type(e).__name__
            )
        else:
            if response.is_success:
                logger.info(f"POST {url} -> {response.status_code}")
                return Ack(url=url, status_code=response.status_code, body=response.text)
            failure = TransportFailure(
                TransportFailureKind.STATUS,
                url,
                status_code=response.status_code,
                body=response.text,
            )
        logger.error(f"Submission to {url} failed: {failure}")
        return failure
