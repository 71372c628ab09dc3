"""Short-lived record of obligations with a submitted, unconfirmed bundle."""
from __future__ import annotations

import time
from typing import Callable

from solders.pubkey import Pubkey


class InFlightSet:
    """Obligations submitted within the last ``ttl_seconds``.

    A TTL of zero disables tracking.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._expires_at: dict[Pubkey, float] = {}

    def _purge(self) -> None:
        now = self._clock()
        expired = [key for key, deadline in self._expires_at.items() if deadline <= now]
        for key in expired:
            del self._expires_at[key]

    def add(self, obligation: Pubkey) -> None:
        if self._ttl <= 0:
            return
        self._expires_at[obligation] = self._clock() + self._ttl

    def __contains__(self, obligation: object) -> bool:
        self._purge()
        return obligation in self._expires_at

    def __len__(self) -> int:
        self._purge()
        return len(self._expires_at)
