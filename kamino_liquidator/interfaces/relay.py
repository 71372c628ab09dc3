"""Bundle relay protocol — priority submission abstraction."""
from typing import Protocol, Sequence

from solders.transaction import VersionedTransaction


class BundleRelay(Protocol):
    """Abstract interface for submitting atomic transaction bundles."""

    async def send_bundle(self, transactions: Sequence[VersionedTransaction]) -> str: ...
