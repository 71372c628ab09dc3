"""Transaction assembly — compute budget, payload, relay tip. Pure, no I/O."""
from __future__ import annotations

from typing import Sequence

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.errors import SignerError
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from ..exceptions import AssemblyError


def assemble_transaction(
    signer: Keypair,
    blockhash: Hash,
    instructions: Sequence[Instruction],
    cu_limit: int,
    cu_price: int,
    tip_account: Pubkey,
    tip_lamports: int,
) -> VersionedTransaction:
    """Build and sign a v0 transaction around ``instructions``.

    Instruction order is fixed: compute-unit limit, compute-unit price, the
    caller's instructions, then the tip transfer to ``tip_account``. The
    signer is the only fee payer and signature. The blockhash is part of the
    signed message, so it is set before signing.
    """
    try:
        full_ixs = [
            set_compute_unit_limit(cu_limit),
            set_compute_unit_price(cu_price),
            *instructions,
            transfer(
                TransferParams(
                    from_pubkey=signer.pubkey(),
                    to_pubkey=tip_account,
                    lamports=tip_lamports,
                )
            ),
        ]
        message = MessageV0.try_compile(
            payer=signer.pubkey(),
            instructions=full_ixs,
            address_lookup_table_accounts=[],
            recent_blockhash=blockhash,
        )
        return VersionedTransaction(message, [signer])
    except (OverflowError, TypeError, ValueError, SignerError) as exc:
        raise AssemblyError(f"Failed to build liquidation transaction: {exc}") from exc
