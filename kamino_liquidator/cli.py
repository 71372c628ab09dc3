"""Command-line interface for the Kamino liquidator."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

from .config import BotConfig, load_config, load_keypair
from .exceptions import LiquidatorError
from .logging_setup import configure_logging
from .services import Liquidator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="kamino-liquidator",
        description="Kamino Lend liquidation bot with Jito bundle submission",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root, if present)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--rpc-url", default=None, help="Solana RPC URL [env: RPC_URL]")
    parser.add_argument(
        "--payer", default=None, metavar="FILE", help="Path to payer keypair [env: PAYER]"
    )
    parser.add_argument("--market", default=None, help="Kamino lending market [env: MARKET]")
    parser.add_argument(
        "--tip-lamports",
        type=int,
        default=None,
        help="Jito tip per liquidation tx (default: 5000) [env: TIP_LAMPORTS]",
    )
    parser.add_argument(
        "--cu-price",
        type=int,
        default=None,
        help="Compute unit price in micro-lamports (default: 2000) [env: CU_PRICE]",
    )
    parser.add_argument(
        "--cu-limit",
        type=int,
        default=None,
        help="Compute unit limit (default: 300000) [env: CU_LIMIT]",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Build and sign transactions without sending them",
    )
    parser.add_argument(
        "--once", action="store_true", default=None, help="Run one iteration then exit"
    )
    parser.add_argument(
        "--jito-timeout",
        type=float,
        default=None,
        help="Jito request timeout in seconds (default: 2) [env: JITO_TIMEOUT]",
    )
    parser.add_argument(
        "--jito-endpoint",
        default=None,
        help="Explicit Jito block engine URL (default: nearest region) [env: JITO_ENDPOINT]",
    )
    parser.add_argument(
        "--tip-account",
        default=None,
        help="Explicit tip account (default: random) [env: TIP_ACCOUNT]",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds to sleep between scans (default: 0.8)",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Map parsed CLI flags onto config override paths."""
    return {
        "rpc.url": args.rpc_url,
        "payer_path": args.payer,
        "market.market": args.market,
        "execution.tip_lamports": args.tip_lamports,
        "execution.cu_price": args.cu_price,
        "execution.cu_limit": args.cu_limit,
        "execution.dry_run": args.dry_run,
        "relay.timeout_seconds": args.jito_timeout,
        "relay.endpoint": args.jito_endpoint,
        "relay.tip_account": args.tip_account,
        "loop.poll_interval_seconds": args.poll_interval,
        "loop.once": args.once,
    }


async def _run(config: BotConfig) -> None:
    """Load credentials, connect the relay and run the loop."""
    payer = load_keypair(config.payer_path)
    logger.info("rpc=%s payer=%s", config.rpc.url, config.payer_path)
    liquidator = await Liquidator.from_config(config, payer)
    await liquidator.run(once=config.loop.once)


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = load_config(args.config, overrides_from_args(args))
        asyncio.run(_run(config))
    except LiquidatorError as e:
        logger.error("Fatal: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
