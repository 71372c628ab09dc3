"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

KAMINO_LENDING_PROGRAM_ID = "KLend2g3cP87fffoy8q1mQqGKjrxjC8boSyAYavgmjD"
KAMINO_MAIN_MARKET = "7u3HeHxYDLhnCoErrtycNokbQYbWGzLs6JSDqGAv5PfF"
DEFAULT_PAYER_PATH = "~/.config/solana/id.json"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RpcConfig:
    url: str = "https://api.mainnet-beta.solana.com"
    timeout_seconds: float = 30.0
    commitment: str = "confirmed"


@dataclass(frozen=True)
class MarketConfig:
    program_id: str = KAMINO_LENDING_PROGRAM_ID
    market: str = KAMINO_MAIN_MARKET


@dataclass(frozen=True)
class ExecutionConfig:
    tip_lamports: int = 5_000
    cu_price: int = 2_000
    cu_limit: int = 300_000
    dry_run: bool = False


@dataclass(frozen=True)
class RelayConfig:
    endpoint: str | None = None
    timeout_seconds: float = 2.0
    tip_account: str | None = None


@dataclass(frozen=True)
class LoopConfig:
    poll_interval_seconds: float = 0.8
    inflight_ttl_seconds: float = 30.0
    once: bool = False


@dataclass(frozen=True)
class BotConfig:
    rpc: RpcConfig = field(default_factory=RpcConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    payer_path: str = DEFAULT_PAYER_PATH

    @property
    def program_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.market.program_id)

    @property
    def market_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.market.market)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


_SECTIONS = ("rpc", "market", "execution", "relay", "loop")

# Environment variables that override a (section, key) in the raw config.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "RPC_URL": ("rpc", "url"),
    "PAYER": ("", "payer_path"),
    "MARKET": ("market", "market"),
    "TIP_LAMPORTS": ("execution", "tip_lamports"),
    "CU_PRICE": ("execution", "cu_price"),
    "CU_LIMIT": ("execution", "cu_limit"),
    "JITO_TIMEOUT": ("relay", "timeout_seconds"),
    "JITO_ENDPOINT": ("relay", "endpoint"),
    "TIP_ACCOUNT": ("relay", "tip_account"),
}


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if not value:
            continue
        if section:
            raw.setdefault(section, {})
            raw[section] = dict(raw[section] or {})
            raw[section][key] = value
        else:
            raw[key] = value
    return raw


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _as_int(raw: dict[str, Any], key: str, default: int) -> int:
    value = raw.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be an integer, got {value!r}") from exc


def _as_float(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be a number, got {value!r}") from exc


def _as_bool(raw: dict[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    return str(value) if value else None


def _build_rpc(raw: dict[str, Any]) -> RpcConfig:
    return RpcConfig(
        url=str(raw.get("url") or RpcConfig.url),
        timeout_seconds=_as_float(raw, "timeout_seconds", RpcConfig.timeout_seconds),
        commitment=str(raw.get("commitment") or RpcConfig.commitment),
    )


def _build_market(raw: dict[str, Any]) -> MarketConfig:
    return MarketConfig(
        program_id=str(raw.get("program_id") or KAMINO_LENDING_PROGRAM_ID),
        market=str(raw.get("market") or KAMINO_MAIN_MARKET),
    )


def _build_execution(raw: dict[str, Any]) -> ExecutionConfig:
    return ExecutionConfig(
        tip_lamports=_as_int(raw, "tip_lamports", ExecutionConfig.tip_lamports),
        cu_price=_as_int(raw, "cu_price", ExecutionConfig.cu_price),
        cu_limit=_as_int(raw, "cu_limit", ExecutionConfig.cu_limit),
        dry_run=_as_bool(raw, "dry_run", False),
    )


def _build_relay(raw: dict[str, Any]) -> RelayConfig:
    return RelayConfig(
        endpoint=_optional_str(raw, "endpoint"),
        timeout_seconds=_as_float(raw, "timeout_seconds", RelayConfig.timeout_seconds),
        tip_account=_optional_str(raw, "tip_account"),
    )


def _build_loop(raw: dict[str, Any]) -> LoopConfig:
    return LoopConfig(
        poll_interval_seconds=_as_float(
            raw, "poll_interval_seconds", LoopConfig.poll_interval_seconds
        ),
        inflight_ttl_seconds=_as_float(
            raw, "inflight_ttl_seconds", LoopConfig.inflight_ttl_seconds
        ),
        once=_as_bool(raw, "once", False),
    )


# ---------------------------------------------------------------------------
# CLI overrides
# ---------------------------------------------------------------------------


def apply_overrides(cfg: BotConfig, overrides: dict[str, Any]) -> BotConfig:
    """Return a copy of ``cfg`` with non-None ``section.key`` overrides applied.

    Keys are dotted paths, e.g. ``"execution.cu_price"`` or ``"payer_path"``.
    """
    top_level: dict[str, Any] = {}
    sections: dict[str, dict[str, Any]] = {}
    for path, value in overrides.items():
        if value is None:
            continue
        section, _, key = path.rpartition(".")
        if section:
            sections.setdefault(section, {})[key] = value
        else:
            top_level[key] = value

    for section, values in sections.items():
        try:
            top_level[section] = replace(getattr(cfg, section), **values)
        except (AttributeError, TypeError) as exc:
            raise ConfigError(f"Unknown config override '{section}': {exc}") from exc

    try:
        return replace(cfg, **top_level)
    except TypeError as exc:
        raise ConfigError(f"Unknown config override: {exc}") from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> BotConfig:
    """Load and validate configuration from YAML + .env + environment + CLI.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root, which may be absent. An explicit path must exist.
        overrides: Dotted-path overrides (usually from CLI flags); ``None``
            values are ignored.
    """
    load_dotenv()

    raw: dict[str, Any] = {}
    if config_path is None:
        default_path = Path(__file__).resolve().parent.parent / "config.yaml"
        path: Path | None = default_path if default_path.exists() else None
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

    if path is not None:
        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Error parsing YAML file {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

    for section in _SECTIONS:
        if raw.get(section) is not None and not isinstance(raw[section], dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")

    raw = _apply_env_overrides(_interpolate_env(raw))

    cfg = BotConfig(
        rpc=_build_rpc(raw.get("rpc") or {}),
        market=_build_market(raw.get("market") or {}),
        execution=_build_execution(raw.get("execution") or {}),
        relay=_build_relay(raw.get("relay") or {}),
        loop=_build_loop(raw.get("loop") or {}),
        payer_path=str(raw.get("payer_path") or DEFAULT_PAYER_PATH),
    )
    cfg = apply_overrides(cfg, overrides or {})

    _validate(cfg)
    if path is not None:
        logger.info("Configuration loaded from %s", path)
    return cfg


def _validate_pubkey(value: str, name: str) -> None:
    try:
        Pubkey.from_string(value)
    except ValueError as exc:
        raise ConfigError(f"{name} is not a valid public key: {value!r}") from exc


def _validate(cfg: BotConfig) -> None:
    """Raise ConfigError on invalid configuration."""
    if not cfg.rpc.url:
        raise ConfigError("RPC URL must be set")
    _validate_pubkey(cfg.market.program_id, "program_id")
    _validate_pubkey(cfg.market.market, "market")
    if cfg.relay.tip_account:
        _validate_pubkey(cfg.relay.tip_account, "tip_account")

    if cfg.execution.tip_lamports < 0:
        raise ConfigError("tip_lamports must not be negative")
    if cfg.execution.cu_price < 0:
        raise ConfigError("cu_price must not be negative")
    if not 0 < cfg.execution.cu_limit <= 0xFFFFFFFF:
        raise ConfigError("cu_limit must be a positive u32")
    if cfg.relay.timeout_seconds <= 0:
        raise ConfigError("relay timeout must be positive")
    if cfg.rpc.timeout_seconds <= 0:
        raise ConfigError("rpc timeout must be positive")
    if cfg.loop.poll_interval_seconds < 0:
        raise ConfigError("poll_interval_seconds must not be negative")
    if cfg.loop.inflight_ttl_seconds < 0:
        raise ConfigError("inflight_ttl_seconds must not be negative")


def load_keypair(path: str | Path) -> Keypair:
    """Load a Solana CLI keypair file (a JSON array of 64 byte values)."""
    path = Path(path).expanduser()
    try:
        with open(path) as f:
            secret = json.load(f)
        return Keypair.from_bytes(bytes(secret))
    except FileNotFoundError as exc:
        raise ConfigError(f"Keypair file not found: {path}") from exc
    except (OSError, ValueError, TypeError) as exc:
        raise ConfigError(f"Failed to load payer keypair from {path}: {exc}") from exc
