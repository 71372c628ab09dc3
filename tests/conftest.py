"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable, Sequence

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from kamino_liquidator.config import (
    BotConfig,
    ExecutionConfig,
    LoopConfig,
    MarketConfig,
    RelayConfig,
    RpcConfig,
)
from kamino_liquidator.models import BorrowLeg, DepositLeg, Obligation, Snapshot
from kamino_liquidator.protocols.kamino import layouts

PROGRAM_ID = Pubkey.from_string("KLend2g3cP87fffoy8q1mQqGKjrxjC8boSyAYavgmjD")

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


@pytest.fixture()
def program_id() -> Pubkey:
    return PROGRAM_ID


@pytest.fixture()
def market() -> Pubkey:
    return Pubkey.from_string("7u3HeHxYDLhnCoErrtycNokbQYbWGzLs6JSDqGAv5PfF")


@pytest.fixture()
def other_market() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture()
def reserve_a() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture()
def reserve_b() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture()
def owner() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture()
def payer() -> Keypair:
    return Keypair()


@pytest.fixture()
def blockhash() -> Hash:
    return Hash.new_unique()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_config(market: Pubkey) -> BotConfig:
    return BotConfig(
        rpc=RpcConfig(url="https://rpc.example.com", timeout_seconds=5),
        market=MarketConfig(program_id=str(PROGRAM_ID), market=str(market)),
        execution=ExecutionConfig(tip_lamports=5_000, cu_price=2_000, cu_limit=300_000),
        relay=RelayConfig(endpoint="https://jito.example.com/api/v1/bundles"),
        loop=LoopConfig(poll_interval_seconds=0, inflight_ttl_seconds=30),
        payer_path="/tmp/id.json",
    )


SAMPLE_YAML = textwrap.dedent("""\
    rpc:
      url: "https://rpc.example.com"
      timeout_seconds: 10
    market:
      market: "7u3HeHxYDLhnCoErrtycNokbQYbWGzLs6JSDqGAv5PfF"
    execution:
      tip_lamports: 10000
      cu_price: 5000
      cu_limit: 400000
    relay:
      endpoint: "https://ny.mainnet.block-engine.jito.wtf/api/v1/bundles"
      timeout_seconds: 3
    loop:
      poll_interval_seconds: 1.5
      inflight_ttl_seconds: 60
    payer_path: "/keys/payer.json"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


@pytest.fixture(autouse=True)
def _clear_bot_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of config tests."""
    for var in (
        "RPC_URL", "PAYER", "MARKET", "TIP_LAMPORTS", "CU_PRICE", "CU_LIMIT",
        "JITO_TIMEOUT", "JITO_ENDPOINT", "TIP_ACCOUNT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("kamino_liquidator.config.load_dotenv", lambda *a, **k: False)


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def unhealthy_obligation(market: Pubkey, owner: Pubkey, reserve_a: Pubkey, reserve_b: Pubkey) -> Obligation:
    return Obligation(
        key=Pubkey.new_unique(),
        lending_market=market,
        owner=owner,
        borrows=(BorrowLeg(reserve=reserve_a, amount=1000),),
        deposits=(DepositLeg(reserve=reserve_b, amount=500),),
    )


@pytest.fixture()
def sample_snapshot(unhealthy_obligation: Obligation) -> Snapshot:
    return Snapshot(reserves={}, obligations=(unhealthy_obligation,))


# ---------------------------------------------------------------------------
# On-chain account encoders
# ---------------------------------------------------------------------------


def _encode_obligation(
    market: Pubkey,
    owner: Pubkey,
    borrows: Sequence[tuple[Pubkey, int]] = (),
    deposits: Sequence[tuple[Pubkey, int]] = (),
) -> bytes:
    null = Pubkey.default()
    deposit_slots = [
        {
            "deposit_reserve": reserve,
            "deposited_amount": amount,
            "market_value_sf": 0,
            "borrowed_amount_against_this_collateral_in_elevation_group": 0,
        }
        for reserve, amount in deposits
    ]
    deposit_slots += [
        {
            "deposit_reserve": null,
            "deposited_amount": 0,
            "market_value_sf": 0,
            "borrowed_amount_against_this_collateral_in_elevation_group": 0,
        }
    ] * (layouts.MAX_OBLIGATION_DEPOSITS - len(deposit_slots))

    borrow_slots = [
        {
            "borrow_reserve": reserve,
            "borrowed_amount_sf": amount << layouts.FRACTION_BITS,
            "market_value_sf": 0,
            "borrow_factor_adjusted_market_value_sf": 0,
            "borrowed_amount_outside_elevation_groups": 0,
        }
        for reserve, amount in borrows
    ]
    borrow_slots += [
        {
            "borrow_reserve": null,
            "borrowed_amount_sf": 0,
            "market_value_sf": 0,
            "borrow_factor_adjusted_market_value_sf": 0,
            "borrowed_amount_outside_elevation_groups": 0,
        }
    ] * (layouts.MAX_OBLIGATION_BORROWS - len(borrow_slots))

    body = layouts.OBLIGATION_LAYOUT.build(
        {
            "tag": 0,
            "lending_market": market,
            "owner": owner,
            "deposits": deposit_slots,
            "lowest_reserve_deposit_liquidation_ltv": 0,
            "deposited_value_sf": 0,
            "borrows": borrow_slots,
        }
    )
    # Trailing fields the liquidator never reads
    return layouts.OBLIGATION_DISCRIMINATOR + body + bytes(128)


def _encode_reserve(market: Pubkey, mint: Pubkey | None = None) -> bytes:
    body = layouts.RESERVE_LAYOUT.build(
        {
            "version": 1,
            "lending_market": market,
            "farm_collateral": Pubkey.default(),
            "farm_debt": Pubkey.default(),
            "liquidity_mint": mint or Pubkey.new_unique(),
        }
    )
    return layouts.RESERVE_DISCRIMINATOR + body + bytes(128)


@pytest.fixture()
def encode_obligation() -> Callable[..., bytes]:
    return _encode_obligation


@pytest.fixture()
def encode_reserve() -> Callable[..., bytes]:
    return _encode_reserve
