"""Jito block engine relay — bundle submission and region discovery."""
from __future__ import annotations

import asyncio
import base64
import logging
import random
import ssl
import time
from typing import Any, Sequence

import aiohttp
import certifi
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from ..exceptions import ConfigError, SubmissionError
from ..models import TipAccount

logger = logging.getLogger(__name__)

# Mainnet-beta tip accounts
JITO_TIP_ACCOUNTS: tuple[str, ...] = (
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
)

REGIONAL_ENDPOINTS: dict[str, str] = {
    "mainnet": "https://mainnet.block-engine.jito.wtf/api/v1/bundles",
    "amsterdam": "https://amsterdam.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "frankfurt": "https://frankfurt.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "ny": "https://ny.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "tokyo": "https://tokyo.mainnet.block-engine.jito.wtf/api/v1/bundles",
    "slc": "https://slc.mainnet.block-engine.jito.wtf/api/v1/bundles",
}


def select_tip_account(override: str | None = None) -> TipAccount:
    """Use ``override`` when given, otherwise pick a random mainnet tip account."""
    if override:
        try:
            return TipAccount(pubkey=Pubkey.from_string(override))
        except ValueError as exc:
            raise ConfigError(f"Invalid tip account: {override!r}") from exc
    return TipAccount(pubkey=Pubkey.from_string(random.choice(JITO_TIP_ACCOUNTS)))


async def _post(endpoint: str, method: str, params: list[Any], timeout: float) -> Any:
    """Make one JSON-RPC call to a block engine and return its ``result``."""
    payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
    ssl_context = ssl.create_default_context(cafile=certifi.where())

    try:
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                endpoint,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise SubmissionError(
                        f"{method}: HTTP {response.status} from {endpoint}: {body[:200]}"
                    )
                result = await response.json()
    except SubmissionError:
        raise
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        raise SubmissionError(f"{method} failed against {endpoint}: {exc}") from exc

    if not isinstance(result, dict):
        raise SubmissionError(f"{method}: malformed response")
    if "error" in result:
        raise SubmissionError(f"{method} rejected: {result['error']}")
    if result.get("result") is None:
        raise SubmissionError(f"{method}: response has no result")
    return result["result"]


class JitoRelay:
    """Submit bundles to one Jito block engine endpoint, chosen at startup."""

    def __init__(self, endpoint: str, timeout_seconds: float) -> None:
        self.endpoint = endpoint
        self.timeout = timeout_seconds

    @classmethod
    async def connect(cls, endpoint: str | None, timeout_seconds: float) -> JitoRelay:
        """Use ``endpoint`` if configured, otherwise discover the nearest region."""
        if endpoint:
            logger.info("Using Jito endpoint %s", endpoint)
            return cls(endpoint, timeout_seconds)
        return await cls.discover(timeout_seconds)

    @classmethod
    async def discover(
        cls,
        timeout_seconds: float,
        endpoints: Sequence[str] | None = None,
    ) -> JitoRelay:
        """Probe every regional endpoint and keep the fastest one that answers."""
        candidates = list(endpoints or REGIONAL_ENDPOINTS.values())

        async def probe(endpoint: str) -> float | None:
            started = time.monotonic()
            try:
                await _post(endpoint, "getTipAccounts", [], timeout_seconds)
            except SubmissionError as e:
                logger.debug("Jito endpoint %s unavailable: %s", endpoint, e)
                return None
            return time.monotonic() - started

        latencies = await asyncio.gather(*(probe(ep) for ep in candidates))
        reachable = [
            (latency, ep) for ep, latency in zip(candidates, latencies) if latency is not None
        ]
        if not reachable:
            raise SubmissionError("No Jito block engine region is reachable")

        latency, best = min(reachable, key=lambda pair: pair[0])
        logger.info("Selected Jito endpoint %s (%.0f ms)", best, latency * 1000)
        return cls(best, timeout_seconds)

    async def send_bundle(self, transactions: Sequence[VersionedTransaction]) -> str:
        """Submit ``transactions`` as one bundle and return the bundle id."""
        if not transactions:
            raise SubmissionError("Refusing to send an empty bundle")

        encoded = [base64.b64encode(bytes(tx)).decode("ascii") for tx in transactions]
        result = await _post(
            self.endpoint,
            "sendBundle",
            [encoded, {"encoding": "base64"}],
            self.timeout,
        )
        return str(result)
