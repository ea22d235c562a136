"""
Drift Signal Extractors

Each extractor is a pure function of a SignalRecord and "now" (epoch ms)
returning one boolean. Each targets a distinct failure mode:

1. Time Bleed: no confirmed progress for 15 minutes (stalling)
2. Tab Cascade: more than 3 contexts opened (escaping)
3. Idea Storm: 3+ idea captures within a minute (ideation flooding)
4. Emotional Spike: erratic gaps between interactions (erratic switching)
5. Loop Expansion: open loops growing rather than closing (accumulating)

Thresholds are fixed constants; changing them changes behavioral parity with
every other client of the same drift model.
"""
from typing import Dict, List, Optional
from dataclasses import dataclass
from enum import Enum
import statistics

from .signal_store import SignalRecord

TIME_BLEED_THRESHOLD_MS = 15 * 60 * 1000
TAB_CASCADE_THRESHOLD = 3
IDEA_STORM_WINDOW_MS = 60_000
IDEA_STORM_MIN_IDEAS = 3
ACTIVITY_WINDOW_MS = 60_000
EMOTIONAL_SPIKE_MIN_EVENTS = 5
EMOTIONAL_SPIKE_VARIANCE_MS2 = 10_000_000  # gap std dev of ~3.16s


class DriftSignal(str, Enum):
    """The five behavioral drift indicators"""
    TIME_BLEED = "time_bleed"
    TAB_CASCADE = "tab_cascade"
    IDEA_STORM = "idea_storm"
    EMOTIONAL_SPIKE = "emotional_spike"
    LOOP_EXPANSION = "loop_expansion"


@dataclass(frozen=True)
class SignalVector:
    """One evaluation of all five drift signals"""
    time_bleed: bool = False
    tab_cascade: bool = False
    idea_storm: bool = False
    emotional_spike: bool = False
    loop_expansion: bool = False

    def as_dict(self) -> Dict[str, bool]:
        return {signal.value: getattr(self, signal.value) for signal in DriftSignal}

    @property
    def active_signals(self) -> List[DriftSignal]:
        return [signal for signal in DriftSignal if getattr(self, signal.value)]


def _within(timestamps: List[int], now_ms: int, window_ms: int) -> List[int]:
    return [t for t in timestamps if now_ms - window_ms <= t <= now_ms]


def time_bleed(record: SignalRecord, now_ms: Optional[int]) -> bool:
    """No confirmed progress for longer than the threshold; unknown progress time never fires"""
    if now_ms is None or record.last_progress_at is None:
        return False
    return now_ms - record.last_progress_at > TIME_BLEED_THRESHOLD_MS


def tab_cascade(record: SignalRecord, now_ms: Optional[int] = None) -> bool:
    return record.tab_count > TAB_CASCADE_THRESHOLD


def idea_storm(record: SignalRecord, now_ms: Optional[int]) -> bool:
    if now_ms is None:
        return False
    recent = _within(record.recent_idea_timestamps, now_ms, IDEA_STORM_WINDOW_MS)
    return len(recent) >= IDEA_STORM_MIN_IDEAS


def activity_gap_variance(record: SignalRecord, now_ms: Optional[int]) -> Optional[float]:
    """
    Population variance (ms^2) of the gaps between recent interactions

    Returns None when fewer than 5 interactions fall in the trailing minute.
    """
    if now_ms is None:
        return None

    recent = _within(record.recent_activity_timestamps, now_ms, ACTIVITY_WINDOW_MS)
    if len(recent) < EMOTIONAL_SPIKE_MIN_EVENTS:
        return None

    gaps = [b - a for a, b in zip(recent, recent[1:])]
    return float(statistics.pvariance(gaps))


def emotional_spike(record: SignalRecord, now_ms: Optional[int]) -> bool:
    """Erratic, not fast or slow: high variance in the gaps between interactions"""
    variance = activity_gap_variance(record, now_ms)
    if variance is None:
        return False
    return variance > EMOTIONAL_SPIKE_VARIANCE_MS2


def loop_expansion(
    record: SignalRecord,
    now_ms: Optional[int] = None,
    open_loop_count: Optional[int] = None,
) -> bool:
    """Open loops grew from a non-zero baseline"""
    previous = record.previous_open_loop_count
    current = record.open_loop_count if open_loop_count is None else open_loop_count
    return current > previous and previous > 0


def extract_signals(
    record: SignalRecord,
    now_ms: Optional[int],
    open_loop_count: Optional[int] = None,
) -> SignalVector:
    """
    Evaluate all five extractors

    Args:
        record: Current signal record
        now_ms: Evaluation time; None disables the time-based signals
        open_loop_count: Current open loop count if newer than the record's

    Returns:
        SignalVector
    """
    return SignalVector(
        time_bleed=time_bleed(record, now_ms),
        tab_cascade=tab_cascade(record, now_ms),
        idea_storm=idea_storm(record, now_ms),
        emotional_spike=emotional_spike(record, now_ms),
        loop_expansion=loop_expansion(record, now_ms, open_loop_count),
    )
