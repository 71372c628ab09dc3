"""Solana JSON-RPC client for raw account state."""
import asyncio
import base64
import binascii
import logging
import ssl
from typing import Any

import aiohttp
import certifi
from solders.hash import Hash
from solders.pubkey import Pubkey

from ...config import RpcConfig
from ...exceptions import AccountNotFoundError, ProviderError

logger = logging.getLogger(__name__)


def _decode_account_data(data: Any) -> bytes:
    """Decode the ``[payload, "base64"]`` pair returned for base64 encoding."""
    if not isinstance(data, list) or len(data) != 2 or data[1] != "base64":
        raise ProviderError(f"Unexpected account data encoding: {data!r:.80}")
    try:
        return base64.b64decode(data[0])
    except (binascii.Error, TypeError) as exc:
        raise ProviderError(f"Invalid base64 account data: {exc}") from exc


class SolanaRpcClient:
    """Solana RPC client. Single endpoint; failures surface as ProviderError."""

    def __init__(self, config: RpcConfig) -> None:
        self.endpoint = config.url
        self.timeout = config.timeout_seconds
        self.commitment = config.commitment

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make one JSON-RPC call and return its ``result`` member."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        try:
            connector = aiohttp.TCPConnector(ssl=ssl_context)
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    self.endpoint,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise ProviderError(f"{method}: HTTP {response.status}")
                    result = await response.json()
        except ProviderError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ProviderError(f"{method} failed against {self.endpoint}: {exc}") from exc

        if not isinstance(result, dict):
            raise ProviderError(f"{method}: malformed response")
        if "error" in result:
            raise ProviderError(f"{method}: RPC Error: {result['error']}")
        if "result" not in result:
            raise ProviderError(f"{method}: response has no result")
        return result["result"]

    async def get_program_accounts(self, program_id: Pubkey) -> list[tuple[Pubkey, bytes]]:
        """Get every account owned by ``program_id`` in endpoint order."""
        result = await self.rpc_call(
            "getProgramAccounts",
            [
                str(program_id),
                {"encoding": "base64", "commitment": self.commitment},
            ],
        )
        if not isinstance(result, list):
            raise ProviderError("getProgramAccounts: expected a list")

        accounts: list[tuple[Pubkey, bytes]] = []
        for entry in result:
            try:
                key = Pubkey.from_string(entry["pubkey"])
                data = entry["account"]["data"]
            except (KeyError, TypeError, ValueError) as exc:
                raise ProviderError(f"getProgramAccounts: malformed entry: {exc}") from exc
            accounts.append((key, _decode_account_data(data)))

        logger.debug("Fetched %d accounts owned by %s", len(accounts), program_id)
        return accounts

    async def get_account(self, key: Pubkey) -> bytes:
        """Get the raw data of a single account."""
        result = await self.rpc_call(
            "getAccountInfo",
            [str(key), {"encoding": "base64", "commitment": self.commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            raise AccountNotFoundError(f"Account {key} not found")
        return _decode_account_data(value.get("data"))

    async def get_latest_blockhash(self) -> Hash:
        """Get the cluster's latest blockhash."""
        result = await self.rpc_call(
            "getLatestBlockhash", [{"commitment": self.commitment}]
        )
        try:
            return Hash.from_string(result["value"]["blockhash"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(f"getLatestBlockhash: malformed response: {exc}") from exc
