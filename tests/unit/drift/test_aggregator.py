"""
Unit tests for the drift Aggregator
"""
from itertools import combinations

import pytest

from driftwatch.drift import (
    AggregateState,
    DriftBand,
    DriftSignal,
    SIGNAL_WEIGHTS,
    SignalRecord,
    SignalVector,
    aggregate,
    drift_band,
    drift_level,
    evaluate_record,
)


def vector_of(*signals: DriftSignal) -> SignalVector:
    return SignalVector(**{s.value: True for s in signals})


class TestWeights:

    def test_weights(self):
        assert SIGNAL_WEIGHTS == {
            DriftSignal.TIME_BLEED: 25,
            DriftSignal.TAB_CASCADE: 20,
            DriftSignal.IDEA_STORM: 20,
            DriftSignal.EMOTIONAL_SPIKE: 20,
            DriftSignal.LOOP_EXPANSION: 15,
        }

    def test_all_signals_cap_at_one_hundred(self):
        state = aggregate(vector_of(*DriftSignal))

        assert state.active_signal_count == 5
        assert state.drift_level == 100

    @pytest.mark.parametrize("size", range(0, 6))
    def test_level_is_capped_weight_sum(self, size):
        for combo in combinations(DriftSignal, size):
            expected = min(100, sum(SIGNAL_WEIGHTS[s] for s in combo))
            assert drift_level(vector_of(*combo)) == expected

    def test_level_never_decreases_as_signals_flip(self):
        active = []
        previous = 0
        for signal in DriftSignal:
            active.append(signal)
            level = drift_level(vector_of(*active))
            assert level >= previous
            previous = level


class TestTrigger:

    def test_all_three_signal_combinations_trigger(self):
        combos = list(combinations(DriftSignal, 3))
        assert len(combos) == 10

        for combo in combos:
            state = aggregate(vector_of(*combo))
            assert state.active_signal_count == 3
            assert state.is_triggered is True

    @pytest.mark.parametrize("size,expected", [
        (0, False), (1, False), (2, False), (3, True), (4, True), (5, True),
    ])
    def test_trigger_iff_three_or_more(self, size, expected):
        for combo in combinations(DriftSignal, size):
            assert aggregate(vector_of(*combo)).is_triggered is expected

    def test_trigger_ignores_weights(self):
        # The two heaviest signals reach 45 but do not trigger
        state = aggregate(vector_of(DriftSignal.TIME_BLEED, DriftSignal.TAB_CASCADE))
        assert state.drift_level == 45
        assert state.is_triggered is False


class TestIdempotence:

    def test_repeated_evaluation_is_identical(self):
        record = SignalRecord(
            last_progress_at=0,
            tab_count=5,
            recent_idea_timestamps=[990_000, 995_000, 1_000_000],
        )

        first = evaluate_record(record, 1_000_000)
        second = evaluate_record(record, 1_000_000)

        assert first == second
        assert first.signals == second.signals

    def test_empty_state_default(self):
        assert aggregate(SignalVector()) == AggregateState()


class TestDriftBand:

    @pytest.mark.parametrize("level,band", [
        (0, DriftBand.CALM),
        (24, DriftBand.CALM),
        (25, DriftBand.WANDERING),
        (49, DriftBand.WANDERING),
        (50, DriftBand.DRIFTING),
        (74, DriftBand.DRIFTING),
        (75, DriftBand.VOID),
        (100, DriftBand.VOID),
    ])
    def test_bands(self, level, band):
        assert drift_band(level) == band

    def test_state_exposes_band(self):
        state = aggregate(vector_of(DriftSignal.TIME_BLEED, DriftSignal.TAB_CASCADE, DriftSignal.IDEA_STORM))
        assert state.drift_level == 65
        assert state.band == DriftBand.DRIFTING
