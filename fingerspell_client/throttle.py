"""
Classification Dispatch Gate - Rate limits classifier requests.

The detector may produce landmarks at 30-60 Hz while the remote classifier
only needs a couple of requests per second. The gate decouples the two:
detection events that arrive too soon after the last dispatch are dropped
for classification purposes.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchTicket:
    """
    Permission to send one classifier request.

    Attributes:
        seq: Monotonically increasing sequence number (starts at 1)
        features: Normalized feature vector to classify
        issued_at_ms: Timestamp at which the dispatch was permitted
    """
    seq: int
    features: np.ndarray
    issued_at_ms: float


def monotonic_ms() -> float:
    """Current monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


class DispatchGate:
    """
    Interval gate for classifier requests.

    A dispatch is permitted only when strictly more than request_interval_ms
    has passed since the previous permitted dispatch. The first offer is
    always permitted.
    """

    def __init__(self, requests_per_second: float = 2.0):
        """
        Initialize the gate.

        Args:
            requests_per_second: Maximum classifier request rate (> 0)
        """
        if requests_per_second <= 0:
            raise ValueError(
                f"requests_per_second must be positive, got {requests_per_second}"
            )
        self.requests_per_second = requests_per_second
        self.request_interval_ms = 1000.0 / requests_per_second

        self._last_dispatch_ms: Optional[float] = None
        self._next_seq = 1
        self._offered = 0
        self._dispatched = 0

    @property
    def last_dispatch_ms(self) -> Optional[float]:
        """Timestamp of the last permitted dispatch, or None."""
        return self._last_dispatch_ms

    def maybe_dispatch(
        self,
        features: np.ndarray,
        now_ms: Optional[float] = None,
    ) -> Optional[DispatchTicket]:
        """
        Offer a feature vector for classification.

        Args:
            features: Normalized feature vector
            now_ms: Current time in ms (defaults to the monotonic clock)

        Returns:
            DispatchTicket if the request may be sent, None if throttled
        """
        if now_ms is None:
            now_ms = monotonic_ms()
        self._offered += 1

        if (
            self._last_dispatch_ms is not None
            and now_ms - self._last_dispatch_ms <= self.request_interval_ms
        ):
            logger.debug(
                f"Throttled: {now_ms - self._last_dispatch_ms:.0f}ms since last dispatch"
            )
            return None

        self._last_dispatch_ms = now_ms
        ticket = DispatchTicket(seq=self._next_seq, features=features, issued_at_ms=now_ms)
        self._next_seq += 1
        self._dispatched += 1
        return ticket

    def reset(self) -> None:
        """Forget the last dispatch so the next offer is permitted."""
        self._last_dispatch_ms = None

    def get_stats(self) -> dict:
        """Get gate statistics."""
        return {
            "offered": self._offered,
            "dispatched": self._dispatched,
            "throttled": self._offered - self._dispatched,
            "request_interval_ms": self.request_interval_ms,
            "last_dispatch_ms": self._last_dispatch_ms,
        }
