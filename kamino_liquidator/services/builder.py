"""Liquidation instruction builder — re-reads the obligation before sizing."""
from __future__ import annotations

import logging

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from ..exceptions import BuildError, NoBorrowsError, NoDepositsError, StaleCandidateError
from ..interfaces.decoder import PositionDecoder
from ..models import LiquidationCandidate
from ..protocols.kamino.adapter import KaminoAdapter
from .selector import largest_leg

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")

# Repay a fifth of the largest borrow.
REPAY_DIVISOR = 5

# Any collateral amount is accepted; price protection is the health pre-filter.
MIN_COLLATERAL_OUT = 0


def repay_amount(borrowed: int) -> int:
    """Size the repayment as 20% of ``borrowed``, truncated."""
    return borrowed // REPAY_DIVISOR


class LiquidationBuilder:
    """Build the liquidation instruction for one candidate from a fresh read."""

    def __init__(
        self,
        adapter: KaminoAdapter,
        decoder: PositionDecoder,
        token_program: Pubkey = TOKEN_PROGRAM_ID,
    ) -> None:
        self._adapter = adapter
        self._decoder = decoder
        self._token_program = token_program

    async def build(self, candidate: LiquidationCandidate) -> Instruction:
        """Re-read the obligation, re-derive its legs and build the instruction.

        The candidate's reserve keys are hints from the bulk snapshot. The
        fresh read decides the amounts; if its largest legs moved to other
        reserves the candidate is stale and is rejected.
        """
        obligation = await self._adapter.fetch_obligation(candidate.obligation)

        borrow = largest_leg(obligation.borrows)
        if borrow is None:
            raise NoBorrowsError(f"Obligation {candidate.obligation} has no borrows")
        deposit = largest_leg(obligation.deposits)
        if deposit is None:
            raise NoDepositsError(f"Obligation {candidate.obligation} has no deposits")

        if borrow.reserve != candidate.repay_reserve:
            raise StaleCandidateError(
                f"Largest borrow moved from {candidate.repay_reserve} to {borrow.reserve}"
            )
        if deposit.reserve != candidate.withdraw_reserve:
            raise StaleCandidateError(
                f"Largest deposit moved from {candidate.withdraw_reserve} to {deposit.reserve}"
            )

        amount = repay_amount(borrow.amount)
        # Deliberate extra guard: a zero repay is never built
        if amount == 0:
            raise BuildError(
                f"Largest borrow of {borrow.amount} is too small to liquidate"
            )

        logger.debug(
            "obligation=%s borrowed=%d repay_amount=%d",
            candidate.obligation, borrow.amount, amount,
        )
        return self._decoder.build_liquidate_instruction(
            lending_market=candidate.market,
            obligation=candidate.obligation,
            repay_reserve=candidate.repay_reserve,
            withdraw_reserve=candidate.withdraw_reserve,
            owner=obligation.owner,
            token_program=self._token_program,
            liquidity_amount=amount,
            min_acceptable_received_liquidity_amount=MIN_COLLATERAL_OUT,
        )
