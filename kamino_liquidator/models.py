"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field

from solders.pubkey import Pubkey


@dataclass(frozen=True)
class BorrowLeg:
    """Debt owed against one reserve, in the asset's smallest unit."""

    reserve: Pubkey
    amount: int


@dataclass(frozen=True)
class DepositLeg:
    """Collateral deposited into one reserve, in the asset's smallest unit."""

    reserve: Pubkey
    amount: int


@dataclass(frozen=True)
class Reserve:
    """One lending-market asset pool."""

    key: Pubkey
    lending_market: Pubkey
    liquidity_mint: Pubkey = field(default_factory=Pubkey.default)


@dataclass(frozen=True)
class Obligation:
    """One borrower's position in a lending market."""

    key: Pubkey
    lending_market: Pubkey
    owner: Pubkey
    borrows: tuple[BorrowLeg, ...] = ()
    deposits: tuple[DepositLeg, ...] = ()


@dataclass(frozen=True)
class LiquidationCandidate:
    """An unhealthy obligation with the reserves chosen for liquidation."""

    obligation: Pubkey
    market: Pubkey
    repay_reserve: Pubkey
    withdraw_reserve: Pubkey


@dataclass(frozen=True)
class TipAccount:
    """Relay fee recipient, chosen once per process."""

    pubkey: Pubkey


@dataclass(frozen=True)
class Snapshot:
    """Decoded program accounts from a single bulk fetch."""

    reserves: dict[Pubkey, Reserve] = field(default_factory=dict)
    obligations: tuple[Obligation, ...] = ()
