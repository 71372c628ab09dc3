"""State provider protocol — blockchain RPC abstraction."""
from typing import Protocol

from solders.hash import Hash
from solders.pubkey import Pubkey


class StateProvider(Protocol):
    """Abstract interface for reading raw on-chain state."""

    async def get_program_accounts(self, program_id: Pubkey) -> list[tuple[Pubkey, bytes]]: ...

    async def get_account(self, key: Pubkey) -> bytes: ...

    async def get_latest_blockhash(self) -> Hash: ...
