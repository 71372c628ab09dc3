"""Integration tests for the Jito relay — bundle submission and region discovery."""
from __future__ import annotations

import base64
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from kamino_liquidator.exceptions import SubmissionError
from kamino_liquidator.relays import JitoRelay
from kamino_liquidator.services.assembler import assemble_transaction

RELAY_MODULE = "kamino_liquidator.relays.jito"
ENDPOINT = "https://jito.example.com/api/v1/bundles"


def _mock_response(payload: dict | None = None, status: int = 200, text: str = "") -> AsyncMock:
    response = AsyncMock()
    response.status = status
    response.json = AsyncMock(return_value=payload or {})
    response.text = AsyncMock(return_value=text)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def _mock_session(post: MagicMock) -> AsyncMock:
    session = AsyncMock()
    session.post = post
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


@pytest.fixture()
def signed_tx(payer: Keypair, blockhash: Hash) -> VersionedTransaction:
    return assemble_transaction(
        payer, blockhash, [], cu_limit=200_000, cu_price=1,
        tip_account=Pubkey.new_unique(), tip_lamports=1_000,
    )


class TestSendBundle:
    @pytest.mark.asyncio
    async def test_returns_bundle_id(self, signed_tx: VersionedTransaction) -> None:
        post = MagicMock(return_value=_mock_response({"jsonrpc": "2.0", "result": "bundle-uuid"}))
        relay = JitoRelay(ENDPOINT, 2.0)

        with patch(f"{RELAY_MODULE}.aiohttp.ClientSession", return_value=_mock_session(post)):
            with patch(f"{RELAY_MODULE}.aiohttp.TCPConnector"):
                bundle_id = await relay.send_bundle([signed_tx])

        assert bundle_id == "bundle-uuid"
        args, kwargs = post.call_args
        assert args[0] == ENDPOINT
        assert kwargs["json"]["method"] == "sendBundle"
        encoded, options = kwargs["json"]["params"]
        assert options == {"encoding": "base64"}
        assert base64.b64decode(encoded[0]) == bytes(signed_tx)

    @pytest.mark.asyncio
    async def test_rejected_bundle_raises(self, signed_tx: VersionedTransaction) -> None:
        post = MagicMock(
            return_value=_mock_response({"error": {"code": -32602, "message": "bundle invalid"}})
        )

        with patch(f"{RELAY_MODULE}.aiohttp.ClientSession", return_value=_mock_session(post)):
            with patch(f"{RELAY_MODULE}.aiohttp.TCPConnector"):
                with pytest.raises(SubmissionError, match="rejected"):
                    await JitoRelay(ENDPOINT, 2.0).send_bundle([signed_tx])

    @pytest.mark.asyncio
    async def test_rate_limited_raises(self, signed_tx: VersionedTransaction) -> None:
        post = MagicMock(return_value=_mock_response(status=429, text="rate limited"))

        with patch(f"{RELAY_MODULE}.aiohttp.ClientSession", return_value=_mock_session(post)):
            with patch(f"{RELAY_MODULE}.aiohttp.TCPConnector"):
                with pytest.raises(SubmissionError, match="429"):
                    await JitoRelay(ENDPOINT, 2.0).send_bundle([signed_tx])

    @pytest.mark.asyncio
    async def test_connection_error_raises(self, signed_tx: VersionedTransaction) -> None:
        post = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with patch(f"{RELAY_MODULE}.aiohttp.ClientSession", return_value=_mock_session(post)):
            with patch(f"{RELAY_MODULE}.aiohttp.TCPConnector"):
                with pytest.raises(SubmissionError):
                    await JitoRelay(ENDPOINT, 2.0).send_bundle([signed_tx])

    @pytest.mark.asyncio
    async def test_empty_bundle_raises(self) -> None:
        with pytest.raises(SubmissionError, match="empty"):
            await JitoRelay(ENDPOINT, 2.0).send_bundle([])


class TestRegionSelection:
    @pytest.mark.asyncio
    async def test_connect_uses_configured_endpoint(self) -> None:
        relay = await JitoRelay.connect(ENDPOINT, 3.0)
        assert relay.endpoint == ENDPOINT
        assert relay.timeout == 3.0

    @pytest.mark.asyncio
    async def test_discover_skips_unreachable_regions(self) -> None:
        down, up = "https://down.example.com", "https://up.example.com"

        def route(endpoint, **kwargs):
            if endpoint == down:
                raise aiohttp.ClientConnectionError("down")
            return _mock_response({"result": ["tip"]})

        post = MagicMock(side_effect=route)
        with patch(f"{RELAY_MODULE}.aiohttp.ClientSession", return_value=_mock_session(post)):
            with patch(f"{RELAY_MODULE}.aiohttp.TCPConnector"):
                relay = await JitoRelay.discover(1.0, endpoints=[down, up])

        assert relay.endpoint == up
        assert post.call_count == 2

    @pytest.mark.asyncio
    async def test_discover_fails_when_nothing_answers(self) -> None:
        post = MagicMock(side_effect=aiohttp.ClientConnectionError("down"))
        with patch(f"{RELAY_MODULE}.aiohttp.ClientSession", return_value=_mock_session(post)):
            with patch(f"{RELAY_MODULE}.aiohttp.TCPConnector"):
                with pytest.raises(SubmissionError, match="reachable"):
                    await JitoRelay.discover(1.0, endpoints=["https://a", "https://b"])
