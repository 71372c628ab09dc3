"""Approximate obligation health — a cheap pre-filter, not on-chain pricing."""
from __future__ import annotations

import math
from typing import Mapping

from solders.pubkey import Pubkey

from ..models import Obligation, Reserve

# Stand-in for collateral factor and price risk.
COLLATERAL_HAIRCUT = 0.75


def estimate_health(obligation: Obligation, reserves: Mapping[Pubkey, Reserve]) -> float:
    """Estimate the health ratio of an obligation.

    Leg amounts are summed as if they were in comparable units (no price
    conversion). A value below 1.0 marks the obligation for a liquidation
    attempt; the on-chain program remains the final arbiter.

    health = (sum(deposits) * 0.75) / sum(borrows)

    Returns 0.0 when there are borrows but no deposits and +inf when there
    are no borrows.
    """
    total_borrow = sum(leg.amount for leg in obligation.borrows)
    total_deposit = sum(leg.amount for leg in obligation.deposits)

    if total_borrow > 0 and total_deposit == 0:
        return 0.0
    if total_borrow == 0:
        return math.inf
    return (total_deposit * COLLATERAL_HAIRCUT) / total_borrow
