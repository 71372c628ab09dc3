"""Collaborator interfaces for the liquidator."""
from .chain import StateProvider
from .decoder import PositionDecoder
from .relay import BundleRelay

__all__ = ["BundleRelay", "PositionDecoder", "StateProvider"]
