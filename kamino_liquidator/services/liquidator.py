"""Liquidation orchestration — poll, select, build, assemble, submit."""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field

from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ..chains.solana import SolanaRpcClient
from ..config import BotConfig
from ..exceptions import LiquidatorError
from ..interfaces.chain import StateProvider
from ..interfaces.relay import BundleRelay
from ..models import LiquidationCandidate, TipAccount
from ..protocols.kamino import KaminoAdapter, KaminoDecoder
from ..relays.jito import JitoRelay, select_tip_account
from .assembler import assemble_transaction
from .builder import MIN_COLLATERAL_OUT, LiquidationBuilder
from .inflight import InFlightSet
from .selector import select_candidates

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    BUILDING = "building"
    ASSEMBLING = "assembling"
    SUBMITTING = "submitting"
    SLEEPING = "sleeping"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class CandidateFailure:
    obligation: Pubkey
    stage: LoopState
    error: str


@dataclass
class CycleReport:
    """What happened during one scan cycle."""

    blockhash: Hash
    candidates: int = 0
    built: list[Pubkey] = field(default_factory=list)
    submitted: dict[Pubkey, str] = field(default_factory=dict)
    skipped_in_flight: list[Pubkey] = field(default_factory=list)
    failures: list[CandidateFailure] = field(default_factory=list)


class Liquidator:
    """Drive the liquidation state machine for one lending market.

    Candidates are processed strictly one after another so an obligation is
    never submitted twice within a cycle.
    """

    def __init__(
        self,
        config: BotConfig,
        payer: Keypair,
        client: StateProvider,
        adapter: KaminoAdapter,
        builder: LiquidationBuilder,
        relay: BundleRelay,
        tip_account: TipAccount,
    ) -> None:
        self._config = config
        self._payer = payer
        self._client = client
        self._adapter = adapter
        self._builder = builder
        self._relay = relay
        self._tip_account = tip_account
        self._market = config.market_pubkey
        self._in_flight = InFlightSet(config.loop.inflight_ttl_seconds)
        self.state = LoopState.IDLE

    @classmethod
    async def from_config(cls, config: BotConfig, payer: Keypair) -> Liquidator:
        """Wire the concrete RPC, Kamino and Jito components."""
        client = SolanaRpcClient(config.rpc)
        decoder = KaminoDecoder(config.program_pubkey)
        adapter = KaminoAdapter(client, decoder, config.program_pubkey)
        builder = LiquidationBuilder(adapter, decoder)
        tip_account = select_tip_account(config.relay.tip_account)
        relay = await JitoRelay.connect(config.relay.endpoint, config.relay.timeout_seconds)
        return cls(config, payer, client, adapter, builder, relay, tip_account)

    # ------------------------------------------------------------------
    # Per-candidate pipeline
    # ------------------------------------------------------------------

    async def _execute(
        self, candidate: LiquidationCandidate, blockhash: Hash, report: CycleReport
    ) -> None:
        execution = self._config.execution

        self.state = LoopState.BUILDING
        ix = await self._builder.build(candidate)

        self.state = LoopState.ASSEMBLING
        tx = assemble_transaction(
            self._payer,
            blockhash,
            [ix],
            execution.cu_limit,
            execution.cu_price,
            self._tip_account.pubkey,
            execution.tip_lamports,
        )
        report.built.append(candidate.obligation)

        if execution.dry_run:
            logger.info(
                "dry-run obligation=%s built liquidation tx signature=%s",
                candidate.obligation, tx.signatures[0],
            )
            return

        self.state = LoopState.SUBMITTING
        bundle_id = await self._relay.send_bundle([tx])
        self._in_flight.add(candidate.obligation)
        report.submitted[candidate.obligation] = bundle_id
        logger.info(
            "bundle submitted obligation=%s jito_uuid=%s tip=%d",
            candidate.obligation, bundle_id, execution.tip_lamports,
        )

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport:
        """Run one scan cycle. Cycle-level provider errors propagate."""
        self.state = LoopState.SCANNING
        logger.info("cycle start market=%s", self._market)

        blockhash = await self._client.get_latest_blockhash()
        snapshot = await self._adapter.fetch_snapshot()
        candidates = select_candidates(snapshot, self._market)

        report = CycleReport(blockhash=blockhash, candidates=len(candidates))
        if not candidates:
            logger.info("no liquidatable obligations found")
            return report

        logger.info("candidates found count=%d", len(candidates))
        for candidate in candidates:
            if candidate.obligation in self._in_flight:
                logger.info("skipping in-flight obligation=%s", candidate.obligation)
                report.skipped_in_flight.append(candidate.obligation)
                continue

            try:
                await self._execute(candidate, blockhash, report)
            except LiquidatorError as e:
                logger.warning(
                    "candidate failed obligation=%s stage=%s error=%s",
                    candidate.obligation, self.state.value, e,
                )
                report.failures.append(
                    CandidateFailure(candidate.obligation, self.state, str(e))
                )

        logger.info(
            "cycle done candidates=%d built=%d submitted=%d failed=%d",
            report.candidates, len(report.built), len(report.submitted), len(report.failures),
        )
        return report

    async def run(self, once: bool = False) -> None:
        """Run the liquidation loop; with ``once`` stop after a single cycle."""
        logger.info(
            "Starting liquidator market=%s payer=%s tip_account=%s dry_run=%s",
            self._market, self._payer.pubkey(), self._tip_account.pubkey,
            self._config.execution.dry_run,
        )
        if MIN_COLLATERAL_OUT == 0:
            logger.warning(
                "Liquidations accept any collateral amount; price protection relies "
                "on the approximate health filter only"
            )

        interval = self._config.loop.poll_interval_seconds
        while True:
            try:
                await self.run_cycle()
            except LiquidatorError as e:
                logger.error("cycle failed error=%s", e)
                if once:
                    self.state = LoopState.TERMINATED
                    raise

            if once:
                self.state = LoopState.TERMINATED
                return

            self.state = LoopState.SLEEPING
            await asyncio.sleep(interval)
