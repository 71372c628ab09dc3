"""Liquidation candidate selection."""
from __future__ import annotations

import logging
from typing import Sequence, TypeVar

from solders.pubkey import Pubkey

from ..models import BorrowLeg, DepositLeg, LiquidationCandidate, Snapshot
from .health import estimate_health

logger = logging.getLogger(__name__)

HEALTH_THRESHOLD = 1.0

Leg = TypeVar("Leg", BorrowLeg, DepositLeg)


def largest_leg(legs: Sequence[Leg]) -> Leg | None:
    """Return the leg with the largest amount; the first one wins ties."""
    if not legs:
        return None
    # max() keeps the first maximal element
    return max(legs, key=lambda leg: leg.amount)


def select_candidates(
    snapshot: Snapshot,
    market: Pubkey,
    threshold: float = HEALTH_THRESHOLD,
) -> list[LiquidationCandidate]:
    """Pick unhealthy obligations in ``market`` with both legs resolvable.

    Candidates keep the snapshot's enumeration order.
    """
    null_key = Pubkey.default()
    candidates: list[LiquidationCandidate] = []

    for obligation in snapshot.obligations:
        if obligation.lending_market != market:
            continue

        health = estimate_health(obligation, snapshot.reserves)
        if health >= threshold:
            continue

        borrow = largest_leg(obligation.borrows)
        deposit = largest_leg(obligation.deposits)
        repay_reserve = borrow.reserve if borrow else null_key
        withdraw_reserve = deposit.reserve if deposit else null_key
        if repay_reserve == null_key or withdraw_reserve == null_key:
            logger.debug(
                "obligation=%s health=%.4f skipped: unresolved leg",
                obligation.key, health,
            )
            continue

        logger.info(
            "candidate obligation=%s health=%.4f repay_reserve=%s withdraw_reserve=%s",
            obligation.key, health, repay_reserve, withdraw_reserve,
        )
        candidates.append(
            LiquidationCandidate(
                obligation=obligation.key,
                market=market,
                repay_reserve=repay_reserve,
                withdraw_reserve=withdraw_reserve,
            )
        )

    return candidates
