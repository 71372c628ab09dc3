"""Kamino Lend adapter — fetches and classifies program accounts."""
from __future__ import annotations

import logging

from solders.pubkey import Pubkey

from ...exceptions import DecodeError, NotThisType
from ...interfaces.chain import StateProvider
from ...interfaces.decoder import PositionDecoder
from ...models import Obligation, Reserve, Snapshot

logger = logging.getLogger(__name__)


class KaminoAdapter:
    """Turn raw Kamino program accounts into typed reserves and obligations."""

    def __init__(
        self,
        client: StateProvider,
        decoder: PositionDecoder,
        program_id: Pubkey,
    ) -> None:
        self._client = client
        self._decoder = decoder
        self._program_id = program_id

    @property
    def protocol_name(self) -> str:
        return "kamino"

    def _classify(
        self, key: Pubkey, data: bytes
    ) -> Reserve | Obligation | None:
        """Try the reserve layout first, then the obligation layout."""
        try:
            reserve = self._decoder.try_decode_reserve(key, data)
            if reserve is not None:
                return reserve
            return self._decoder.try_decode_obligation(key, data)
        except DecodeError as e:
            logger.debug("Dropping undecodable account %s: %s", key, e)
            return None

    async def fetch_snapshot(self) -> Snapshot:
        """Fetch every program account once and index reserves by key."""
        accounts = await self._client.get_program_accounts(self._program_id)

        reserves: dict[Pubkey, Reserve] = {}
        obligations: list[Obligation] = []
        skipped = 0

        for key, data in accounts:
            record = self._classify(key, data)
            if isinstance(record, Reserve):
                reserves[key] = record
            elif isinstance(record, Obligation):
                obligations.append(record)
            else:
                skipped += 1

        logger.info(
            "%s snapshot accounts=%d reserves=%d obligations=%d skipped=%d",
            self.protocol_name, len(accounts), len(reserves), len(obligations), skipped,
        )
        return Snapshot(reserves=reserves, obligations=tuple(obligations))

    async def fetch_obligation(self, key: Pubkey) -> Obligation:
        """Read and decode one obligation fresh from the chain."""
        data = await self._client.get_account(key)
        try:
            return self._decoder.decode_obligation(key, data)
        except NotThisType as exc:
            raise DecodeError(f"Account {key} is no longer an obligation") from exc
