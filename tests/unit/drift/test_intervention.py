"""
Unit tests for the overload Intervention Controller

Tests cover:
- Idle/Active transitions
- Scenario and phrase selection
- Breathing cycle phase math
- Audio toggle and dismissal side effects
"""
import random
import pytest
from unittest.mock import MagicMock

from driftwatch.drift import (
    BreathPhase,
    BreathingCycle,
    CALMING_PHRASES,
    InterventionController,
    InterventionState,
    LoadCounts,
    SCENARIOS,
    compute_cognitive_load,
)

OVERLOAD = compute_cognitive_load(LoadCounts(open_projects=6))
STABLE = compute_cognitive_load(LoadCounts(open_projects=1))


@pytest.fixture
def audio():
    return MagicMock()


@pytest.fixture
def controller(audio, first_choice):
    return InterventionController(selector=first_choice, audio=audio)


class TestCatalogs:

    def test_catalog_sizes(self):
        assert len(SCENARIOS) == 5
        assert len(CALMING_PHRASES) == 9
        assert {s.scenario_id for s in SCENARIOS} == {"desert", "space", "witch", "eggs", "tornado"}

    def test_every_entry_reachable_with_default_selector(self):
        random.seed(1234)
        seen_scenarios = set()
        seen_phrases = set()

        controller = InterventionController()
        for i in range(500):
            controller.activate(now_ms=i)
            seen_scenarios.add(controller.scenario.scenario_id)
            seen_phrases.add(controller.phrase)
            controller.dismiss()

        assert seen_scenarios == {s.scenario_id for s in SCENARIOS}
        assert seen_phrases == set(CALMING_PHRASES)

    def test_scenario_and_phrase_selected_independently(self):
        calls = []

        def recording_selector(items):
            calls.append(items)
            return items[-1]

        controller = InterventionController(selector=recording_selector)
        controller.activate(now_ms=0)

        assert calls == [SCENARIOS, CALMING_PHRASES]
        assert controller.scenario == SCENARIOS[-1]
        assert controller.phrase == CALMING_PHRASES[-1]


class TestTransitions:

    def test_starts_idle(self, controller):
        assert controller.state == InterventionState.IDLE
        assert controller.is_active is False
        assert controller.scenario is None
        assert controller.phase is None

    def test_overload_activates(self, controller, audio):
        assert controller.observe_load(OVERLOAD, now_ms=0) is True

        assert controller.is_active is True
        assert controller.scenario == SCENARIOS[0]
        assert controller.phrase == CALMING_PHRASES[0]
        assert controller.phase == BreathPhase.IN
        audio.play.assert_called_once()

    def test_non_overload_does_not_activate(self, controller):
        assert controller.observe_load(STABLE, now_ms=0) is False
        assert controller.is_active is False

    def test_activation_while_active_keeps_selection(self, controller):
        controller.activate(now_ms=0)
        controller.selector = lambda items: items[1]

        assert controller.activate(now_ms=10) is False
        assert controller.observe_load(OVERLOAD, now_ms=20) is False
        assert controller.scenario == SCENARIOS[0]
        assert controller.activation_count == 1

    def test_no_automatic_timeout(self, controller):
        controller.activate(now_ms=0)
        controller.tick(now_ms=24 * 60 * 60 * 1000)

        assert controller.is_active is True

    def test_dismiss_stops_and_rewinds_audio(self, controller, audio):
        controller.activate(now_ms=0)

        assert controller.dismiss() is True

        assert controller.is_active is False
        assert controller.scenario is None
        audio.pause.assert_called_once()
        audio.rewind.assert_called_once()

    def test_dismiss_when_idle_is_noop(self, controller, audio):
        assert controller.dismiss() is False
        audio.pause.assert_not_called()

    def test_can_reactivate_after_dismiss(self, controller):
        controller.activate(now_ms=0)
        controller.dismiss()

        assert controller.observe_load(OVERLOAD, now_ms=5) is True
        assert controller.activation_count == 2


class TestBreathingCycle:

    def test_rejects_non_positive_phase(self):
        with pytest.raises(ValueError):
            BreathingCycle(phase_ms=0)

    @pytest.mark.parametrize("elapsed,phase", [
        (0, BreathPhase.IN),
        (3999, BreathPhase.IN),
        (4000, BreathPhase.HOLD),
        (7999, BreathPhase.HOLD),
        (8000, BreathPhase.OUT),
        (12000, BreathPhase.IN),
        (16500, BreathPhase.HOLD),
    ])
    def test_phase_after_elapsed(self, elapsed, phase):
        assert BreathingCycle(4000).advance(elapsed) == phase

    def test_incremental_ticks_accumulate(self):
        cycle = BreathingCycle(4000)
        for _ in range(3):
            cycle.advance(1500)

        assert cycle.phase == BreathPhase.HOLD
        assert cycle.remaining_ms == 3500

    def test_negative_elapsed_is_ignored(self):
        cycle = BreathingCycle(4000)
        cycle.advance(2000)
        cycle.advance(-10_000)

        assert cycle.phase == BreathPhase.IN
        assert cycle.phase_elapsed_ms == 2000

    def test_controller_tick_uses_time_since_last_tick(self, controller):
        controller.activate(now_ms=1000)

        assert controller.tick(now_ms=3000) == BreathPhase.IN
        assert controller.tick(now_ms=5000) == BreathPhase.HOLD
        assert controller.tick(now_ms=13000) == BreathPhase.IN

    def test_tick_while_idle_does_nothing(self, controller):
        assert controller.tick(now_ms=50_000) is None

    def test_reactivation_restarts_cycle(self, controller):
        controller.activate(now_ms=0)
        controller.tick(now_ms=5000)
        controller.dismiss()
        controller.activate(now_ms=100_000)

        assert controller.phase == BreathPhase.IN


class TestAudio:

    def test_disabled_audio_does_not_play(self, audio, first_choice):
        controller = InterventionController(selector=first_choice, audio=audio, audio_enabled=False)
        controller.activate(now_ms=0)

        audio.play.assert_not_called()

    def test_toggle_is_orthogonal_to_state(self, controller):
        assert controller.toggle_audio() is False
        assert controller.is_active is False
        assert controller.toggle_audio() is True

    def test_toggle_off_while_active_stops_playback(self, controller, audio):
        controller.activate(now_ms=0)
        controller.toggle_audio()

        assert controller.is_active is True
        audio.pause.assert_called_once()

    def test_toggle_on_while_active_starts_playback(self, audio, first_choice):
        controller = InterventionController(selector=first_choice, audio=audio, audio_enabled=False)
        controller.activate(now_ms=0)
        controller.toggle_audio()

        audio.play.assert_called_once()

    def test_playback_failure_does_not_block_activation(self, controller, audio):
        audio.play.side_effect = RuntimeError("autoplay blocked")

        assert controller.activate(now_ms=0) is True
        assert controller.is_active is True
