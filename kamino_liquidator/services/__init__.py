"""Service modules"""
from .assembler import assemble_transaction
from .builder import LiquidationBuilder
from .health import estimate_health
from .liquidator import CycleReport, Liquidator, LoopState
from .selector import select_candidates

__all__ = [
    "CycleReport",
    "LiquidationBuilder",
    "Liquidator",
    "LoopState",
    "assemble_transaction",
    "estimate_health",
    "select_candidates",
]
