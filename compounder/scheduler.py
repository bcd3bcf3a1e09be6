"""
Reclaim scheduler.

Holds the time of the last successful claim + re-bond and decides whether the
recommended interval has elapsed. State lives for the process lifetime only;
a restart begins in NEVER_CLAIMED and reclaims on the first cycle.

The interval is always given in seconds (OptimizationResult.seconds_between_compounding),
never as a rounds-per-year frequency.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class ReclaimState(str, Enum):
    NEVER_CLAIMED = "never_claimed"
    IDLE = "idle"
    READY_TO_RECLAIM = "ready_to_reclaim"


@dataclass
class SchedulerState:
    last_claim_timestamp: float
    has_claimed_once: bool = False


@dataclass(frozen=True)
class ReclaimDecision:
    state: ReclaimState
    remaining: float = 0.0  # seconds until ready

    @property
    def should_reclaim(self) -> bool:
        return self.state is not ReclaimState.IDLE


class ReclaimScheduler:
    """Decides whether this cycle should claim and re-bond."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.state = SchedulerState(last_claim_timestamp=clock())

    def decide(self, recommended_seconds: float) -> ReclaimDecision:
        if not self.state.has_claimed_once:
            return ReclaimDecision(ReclaimState.NEVER_CLAIMED)

        elapsed = self._clock() - self.state.last_claim_timestamp
        if elapsed >= recommended_seconds:
            return ReclaimDecision(ReclaimState.READY_TO_RECLAIM)
        return ReclaimDecision(ReclaimState.IDLE, remaining=recommended_seconds - elapsed)

    def should_reclaim(self, recommended_seconds: float) -> bool:
        return self.decide(recommended_seconds).should_reclaim

    def next_reclaim_in(self, recommended_seconds: float) -> float:
        """Seconds until the next reclaim is due (0 if due now)."""
        return self.decide(recommended_seconds).remaining

    def record_claim(self) -> None:
        """Mark a successful claim + re-bond at the current time."""
        self.state.last_claim_timestamp = self._clock()
        self.state.has_claimed_once = True
