"""
End-to-end drift flow: events -> store -> signals -> aggregate -> intervention
"""
import pytest

from driftwatch.drift import DriftMonitor, DriftSignal, LoadCounts


@pytest.mark.integration
class TestDriftFlow:

    def test_stall_then_escape_triggers(self, monitor, clock):
        """Stalling alone does not trigger; adding tab and idea flooding does"""
        monitor.record_progress()
        clock.advance(minutes=16)

        state = monitor.evaluate()
        assert state.signals.active_signals == [DriftSignal.TIME_BLEED]
        assert state.active_signal_count == 1
        assert state.drift_level == 25
        assert state.is_triggered is False

        for _ in range(5):
            monitor.record_context_switch()
            clock.advance(seconds=5)
        for _ in range(4):
            monitor.record_idea_capture()
            clock.advance(seconds=5)

        state = monitor.evaluate()
        assert state.signals.time_bleed is True
        assert state.signals.tab_cascade is True
        assert state.signals.idea_storm is True
        assert state.signals.emotional_spike is False
        assert state.signals.loop_expansion is False
        assert state.active_signal_count == 3
        assert state.drift_level == 65
        assert state.is_triggered is True

    def test_progress_clears_time_bleed_only(self, monitor, clock):
        monitor.record_progress()
        for _ in range(3):
            monitor.record_context_switch()
        clock.advance(minutes=20)
        assert monitor.evaluate().active_signal_count == 2

        monitor.record_progress()

        state = monitor.evaluate()
        assert state.signals.time_bleed is False
        assert state.signals.tab_cascade is True

    def test_loop_expansion_follows_open_loop_updates(self, monitor):
        monitor.update_open_loop_count(0)
        monitor.update_open_loop_count(3)
        assert monitor.evaluate().signals.loop_expansion is False

        monitor.update_open_loop_count(5)
        assert monitor.evaluate().signals.loop_expansion is True

        # Malformed reading leaves the last good state in place
        monitor.update_open_loop_count(-2)
        assert monitor.evaluate().signals.loop_expansion is True

        monitor.update_open_loop_count(4)
        assert monitor.evaluate().signals.loop_expansion is False

    def test_erratic_activity_spikes(self, monitor, clock):
        for gap in [0, 500, 8000, 300, 9000, 200]:
            clock.advance(ms=gap)
            monitor.record_activity()

        assert monitor.evaluate().signals.emotional_spike is True

    def test_overload_session_across_reload(self, storage, clock, first_choice):
        monitor = DriftMonitor("s", storage=storage, clock=clock, selector=first_choice)
        monitor.record_progress()
        for _ in range(4):
            monitor.record_context_switch()

        load = monitor.observe_load(LoadCounts(open_projects=5, open_tasks=2, overdue_tasks=1))
        assert load.ram_usage == 89
        assert monitor.controller.is_active is True

        clock.advance(seconds=9)
        assert monitor.tick().value == "out"

        monitor.dismiss()
        assert monitor.controller.is_active is False

        # Page reload within the session: drift state is back, intervention is not
        reloaded = DriftMonitor("s", storage=storage, clock=clock, selector=first_choice)
        assert reloaded.evaluate().signals.tab_cascade is True
        assert reloaded.controller.is_active is False
