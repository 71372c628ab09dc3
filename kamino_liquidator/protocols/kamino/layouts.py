"""Borsh layouts for the Kamino Lend accounts and instructions we touch.

Only the leading fields of ``Reserve`` and ``Obligation`` are declared;
everything after the last declared field is ignored when parsing. Fields
the liquidator never reads are declared as ``Padding`` of the right width.
"""
from __future__ import annotations

import hashlib

import borsh_construct as borsh
from construct import Adapter, Array, Bytes, Padding
from solders.pubkey import Pubkey

DISCRIMINATOR_SIZE = 8

# Kamino stores scaled fractions ("_sf") with 60 fractional bits.
FRACTION_BITS = 60

MAX_OBLIGATION_DEPOSITS = 8
MAX_OBLIGATION_BORROWS = 5

LIQUIDATE_INSTRUCTION_NAME = "liquidate_obligation_and_redeem_reserve_collateral"


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator: ``sha256("account:<Name>")[:8]``."""
    return hashlib.sha256(f"account:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


def instruction_discriminator(name: str) -> bytes:
    """Anchor instruction discriminator: ``sha256("global:<name>")[:8]``."""
    return hashlib.sha256(f"global:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


class _PubkeyAdapter(Adapter):
    def _decode(self, obj, context, path):
        return Pubkey.from_bytes(obj)

    def _encode(self, obj, context, path):
        return bytes(obj)


BorshPubkey = _PubkeyAdapter(Bytes(32))

RESERVE_DISCRIMINATOR = account_discriminator("Reserve")
OBLIGATION_DISCRIMINATOR = account_discriminator("Obligation")
LIQUIDATE_DISCRIMINATOR = instruction_discriminator(LIQUIDATE_INSTRUCTION_NAME)

RESERVE_LAYOUT = borsh.CStruct(
    "version" / borsh.U64,
    "last_update" / Padding(16),
    "lending_market" / BorshPubkey,
    "farm_collateral" / BorshPubkey,
    "farm_debt" / BorshPubkey,
    # ReserveLiquidity begins with the mint
    "liquidity_mint" / BorshPubkey,
)

OBLIGATION_COLLATERAL_LAYOUT = borsh.CStruct(
    "deposit_reserve" / BorshPubkey,
    "deposited_amount" / borsh.U64,
    "market_value_sf" / borsh.U128,
    "borrowed_amount_against_this_collateral_in_elevation_group" / borsh.U64,
    "padding" / Padding(9 * 8),
)

OBLIGATION_LIQUIDITY_LAYOUT = borsh.CStruct(
    "borrow_reserve" / BorshPubkey,
    # BigFractionBytes: value [u64; 4] + padding [u64; 2]
    "cumulative_borrow_rate_bsf" / Padding(6 * 8),
    "padding" / Padding(8),
    "borrowed_amount_sf" / borsh.U128,
    "market_value_sf" / borsh.U128,
    "borrow_factor_adjusted_market_value_sf" / borsh.U128,
    "borrowed_amount_outside_elevation_groups" / borsh.U64,
    "padding2" / Padding(7 * 8),
)

OBLIGATION_LAYOUT = borsh.CStruct(
    "tag" / borsh.U64,
    "last_update" / Padding(16),
    "lending_market" / BorshPubkey,
    "owner" / BorshPubkey,
    "deposits" / Array(MAX_OBLIGATION_DEPOSITS, OBLIGATION_COLLATERAL_LAYOUT),
    "lowest_reserve_deposit_liquidation_ltv" / borsh.U64,
    "deposited_value_sf" / borsh.U128,
    "borrows" / Array(MAX_OBLIGATION_BORROWS, OBLIGATION_LIQUIDITY_LAYOUT),
)

LIQUIDATE_ARGS_LAYOUT = borsh.CStruct(
    "liquidity_amount" / borsh.U64,
    "min_acceptable_received_liquidity_amount" / borsh.U64,
)
