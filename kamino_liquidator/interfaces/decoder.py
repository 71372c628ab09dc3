"""Position decoder protocol — account decoding and instruction building."""
from typing import Protocol

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from ..models import Obligation, Reserve


class PositionDecoder(Protocol):
    """Abstract interface for a lending program's account and instruction codec."""

    def try_decode_reserve(self, key: Pubkey, data: bytes) -> Reserve | None: ...

    def try_decode_obligation(self, key: Pubkey, data: bytes) -> Obligation | None: ...

    def decode_obligation(self, key: Pubkey, data: bytes) -> Obligation: ...

    def build_liquidate_instruction(
        self,
        *,
        lending_market: Pubkey,
        obligation: Pubkey,
        repay_reserve: Pubkey,
        withdraw_reserve: Pubkey,
        owner: Pubkey,
        token_program: Pubkey,
        liquidity_amount: int,
        min_acceptable_received_liquidity_amount: int,
    ) -> Instruction: ...
