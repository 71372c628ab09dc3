"""Kamino Lend account decoder and liquidation instruction builder — no I/O."""
from __future__ import annotations

from construct import ConstructError
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from ...exceptions import BuildError, DecodeError, NotThisType
from ...models import BorrowLeg, DepositLeg, Obligation, Reserve
from . import layouts

_NULL_KEY = Pubkey.default()


def _check_discriminator(data: bytes, expected: bytes, name: str) -> bytes:
    """Return the account body after the discriminator, or raise NotThisType."""
    if len(data) < layouts.DISCRIMINATOR_SIZE or data[: layouts.DISCRIMINATOR_SIZE] != expected:
        raise NotThisType(f"Account is not a {name}")
    return data[layouts.DISCRIMINATOR_SIZE:]


class KaminoDecoder:
    """Decode Kamino Lend ``Reserve`` / ``Obligation`` accounts and build liquidations."""

    def __init__(self, program_id: Pubkey) -> None:
        self.program_id = program_id

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def decode_reserve(self, key: Pubkey, data: bytes) -> Reserve:
        body = _check_discriminator(data, layouts.RESERVE_DISCRIMINATOR, "Reserve")
        try:
            parsed = layouts.RESERVE_LAYOUT.parse(body)
        except ConstructError as exc:
            raise DecodeError(f"Malformed reserve {key}: {exc}") from exc
        return Reserve(
            key=key,
            lending_market=parsed.lending_market,
            liquidity_mint=parsed.liquidity_mint,
        )

    def decode_obligation(self, key: Pubkey, data: bytes) -> Obligation:
        """Decode an obligation, omitting empty deposit and borrow slots.

        Borrow amounts are converted from scaled fractions to whole units
        (truncating); deposit amounts are the raw deposited collateral.
        """
        body = _check_discriminator(data, layouts.OBLIGATION_DISCRIMINATOR, "Obligation")
        try:
            parsed = layouts.OBLIGATION_LAYOUT.parse(body)
        except ConstructError as exc:
            raise DecodeError(f"Malformed obligation {key}: {exc}") from exc

        deposits = tuple(
            DepositLeg(reserve=slot.deposit_reserve, amount=slot.deposited_amount)
            for slot in parsed.deposits
            if slot.deposit_reserve != _NULL_KEY
        )
        borrows = tuple(
            BorrowLeg(
                reserve=slot.borrow_reserve,
                amount=slot.borrowed_amount_sf >> layouts.FRACTION_BITS,
            )
            for slot in parsed.borrows
            if slot.borrow_reserve != _NULL_KEY
        )
        return Obligation(
            key=key,
            lending_market=parsed.lending_market,
            owner=parsed.owner,
            borrows=borrows,
            deposits=deposits,
        )

    def try_decode_reserve(self, key: Pubkey, data: bytes) -> Reserve | None:
        try:
            return self.decode_reserve(key, data)
        except NotThisType:
            return None

    def try_decode_obligation(self, key: Pubkey, data: bytes) -> Obligation | None:
        try:
            return self.decode_obligation(key, data)
        except NotThisType:
            return None

    # ------------------------------------------------------------------
    # Instructions
    # ------------------------------------------------------------------

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
    ) -> Instruction:
        accounts = {
            "lending_market": lending_market,
            "obligation": obligation,
            "repay_reserve": repay_reserve,
            "withdraw_reserve": withdraw_reserve,
            "owner": owner,
            "token_program": token_program,
        }
        missing = [name for name, key in accounts.items() if key == _NULL_KEY]
        if missing:
            raise BuildError(f"Liquidation accounts not set: {', '.join(missing)}")

        try:
            encoded_args = layouts.LIQUIDATE_ARGS_LAYOUT.build(
                {
                    "liquidity_amount": liquidity_amount,
                    "min_acceptable_received_liquidity_amount": min_acceptable_received_liquidity_amount,
                }
            )
        except ConstructError as exc:
            raise BuildError(f"Invalid liquidation arguments: {exc}") from exc

        keys = [
            AccountMeta(pubkey=lending_market, is_signer=False, is_writable=False),
            AccountMeta(pubkey=obligation, is_signer=False, is_writable=True),
            AccountMeta(pubkey=repay_reserve, is_signer=False, is_writable=True),
            AccountMeta(pubkey=withdraw_reserve, is_signer=False, is_writable=True),
            AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
            AccountMeta(pubkey=token_program, is_signer=False, is_writable=False),
        ]
        data = layouts.LIQUIDATE_DISCRIMINATOR + encoded_args
        return Instruction(self.program_id, data, keys)
