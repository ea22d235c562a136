"""
Drift Aggregator

Projects a SignalVector into an aggregate risk state. Owns no state:
evaluating the same vector twice always yields the same result.

- Active count: number of true signals (0-5)
- Drift level: weighted sum capped at 100; weights reflect the cost of
  recovering from each drift mode, stalling highest
- Trigger: 3+ active signals, independent of the weights so one miscalibrated
  weight cannot fire it alone
"""
from typing import Dict, Optional
from dataclasses import dataclass, field
from enum import Enum

from .extractors import DriftSignal, SignalVector, extract_signals
from .signal_store import SignalRecord

SIGNAL_WEIGHTS: Dict[DriftSignal, int] = {
    DriftSignal.TIME_BLEED: 25,
    DriftSignal.TAB_CASCADE: 20,
    DriftSignal.IDEA_STORM: 20,
    DriftSignal.EMOTIONAL_SPIKE: 20,
    DriftSignal.LOOP_EXPANSION: 15,
}

MAX_DRIFT_LEVEL = 100
TRIGGER_MIN_SIGNALS = 3


class DriftBand(str, Enum):
    """Readout label for a drift level"""
    CALM = "calm"              # < 25
    WANDERING = "wandering"    # 25-49
    DRIFTING = "drifting"      # 50-74
    VOID = "void"              # 75+


@dataclass(frozen=True)
class AggregateState:
    """Aggregate drift risk for one evaluation"""
    signals: SignalVector = field(default_factory=SignalVector)
    active_signal_count: int = 0
    drift_level: int = 0
    is_triggered: bool = False

    @property
    def band(self) -> DriftBand:
        return drift_band(self.drift_level)


def drift_level(signals: SignalVector) -> int:
    level = sum(SIGNAL_WEIGHTS[s] for s in signals.active_signals)
    return min(MAX_DRIFT_LEVEL, level)


def drift_band(level: int) -> DriftBand:
    if level >= 75:
        return DriftBand.VOID
    if level >= 50:
        return DriftBand.DRIFTING
    if level >= 25:
        return DriftBand.WANDERING
    return DriftBand.CALM


def aggregate(signals: SignalVector) -> AggregateState:
    active = len(signals.active_signals)
    return AggregateState(
        signals=signals,
        active_signal_count=active,
        drift_level=drift_level(signals),
        is_triggered=active >= TRIGGER_MIN_SIGNALS,
    )


def evaluate_record(
    record: SignalRecord,
    now_ms: Optional[int],
    open_loop_count: Optional[int] = None,
) -> AggregateState:
    """Extract and aggregate in one step"""
    return aggregate(extract_signals(record, now_ms, open_loop_count))
