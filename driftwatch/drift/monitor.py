"""
Drift Monitor - Per-Session Context

Binds one session's SignalStore, clock and InterventionController into an
explicit context object. Every consumer goes through a monitor rather than
module-level state, so independent sessions never interfere.

Two tracks stay independently queryable:
- evaluate(): behavioral drift signals and their aggregate
- observe_load(): the count-based load gauge, which drives the intervention

Whether the drift trigger should also drive the intervention is left to the
integrator (drive_with_drift, off by default).
"""
from typing import Any, Dict, Optional
import logging
import threading

from driftwatch.core.config import settings

from .aggregator import AggregateState, evaluate_record
from .clock import Clock, read_clock, system_clock
from .extractors import activity_gap_variance
from .intervention import (
    BREATH_PHASE_MS,
    BREATH_PROMPTS,
    AmbientAudio,
    BreathPhase,
    InterventionController,
    Selector,
)
from .load_gauge import CognitiveLoad, LoadCounts, compute_cognitive_load
from .signal_store import (
    InMemorySessionStorage,
    RedisSessionStorage,
    SessionStorage,
    SignalStore,
)

logger = logging.getLogger(__name__)


class DriftMonitor:
    """Drift tracking and intervention state for one usage session"""

    def __init__(
        self,
        session_id: str,
        storage: Optional[SessionStorage] = None,
        clock: Optional[Clock] = None,
        selector: Optional[Selector] = None,
        audio: Optional[AmbientAudio] = None,
        phase_ms: int = BREATH_PHASE_MS,
        drive_with_drift: bool = False,
        key_prefix: str = "drift:",
    ):
        self.session_id = session_id
        self.clock = clock or system_clock
        self.store = SignalStore(session_id, storage=storage, clock=self.clock, key_prefix=key_prefix)
        self.controller = InterventionController(
            selector=selector, audio=audio, phase_ms=phase_ms, session_id=session_id
        )
        self.drive_with_drift = drive_with_drift
        self.last_load: Optional[CognitiveLoad] = None
        # Held by callers that serve a session from more than one thread
        self.lock = threading.RLock()

    def now(self) -> Optional[int]:
        return read_clock(self.clock)

    # Inbound events

    def record_progress(self):
        self.store.record_progress()

    def record_context_switch(self):
        self.store.record_context_switch()

    def record_idea_capture(self):
        self.store.record_idea_capture()

    def record_activity(self):
        self.store.record_activity()

    def update_open_loop_count(self, count) -> bool:
        return self.store.update_open_loop_count(count)

    def reset(self):
        self.store.reset()

    # Drift track

    def evaluate(self, now_ms: Optional[int] = None) -> AggregateState:
        """
        Evaluate the drift signals and their aggregate

        Side-effect free unless drive_with_drift is set, in which case a
        triggered evaluation activates the intervention.
        """
        now = now_ms if now_ms is not None else self.now()
        self.store.anchor_progress(now)
        state = evaluate_record(self.store.record, now)

        if self.drive_with_drift and state.is_triggered and now is not None:
            self.controller.activate(now, reason="drift")

        return state

    # Load track

    def observe_load(self, counts: LoadCounts, now_ms: Optional[int] = None) -> CognitiveLoad:
        """Compute the load gauge and let it gate the intervention"""
        load = compute_cognitive_load(counts)
        self.last_load = load

        now = now_ms if now_ms is not None else self.now()
        if now is not None:
            self.controller.observe_load(load, now)
        return load

    # Intervention passthroughs

    def tick(self, now_ms: Optional[int] = None) -> Optional[BreathPhase]:
        now = now_ms if now_ms is not None else self.now()
        if now is None:
            return self.controller.phase
        return self.controller.tick(now)

    def dismiss(self) -> bool:
        return self.controller.dismiss()

    def toggle_audio(self) -> bool:
        return self.controller.toggle_audio()

    def intervention_status(self) -> Dict[str, Any]:
        controller = self.controller
        phase = controller.phase
        return {
            "state": controller.state.value,
            "is_active": controller.is_active,
            "scenario": controller.scenario,
            "phrase": controller.phrase,
            "phase": phase.value if phase else None,
            "phase_prompt": BREATH_PROMPTS[phase] if phase else None,
            "phase_remaining_ms": controller.breathing.remaining_ms if phase else None,
            "audio_enabled": controller.audio_enabled,
            "activation_count": controller.activation_count,
            "activated_at": controller.activated_at,
        }

    def status(self, now_ms: Optional[int] = None) -> Dict[str, Any]:
        """Combined read-only readout for status displays"""
        now = now_ms if now_ms is not None else self.now()
        self.store.anchor_progress(now)
        record = self.store.snapshot()
        state = evaluate_record(record, now)
        return {
            "session_id": self.session_id,
            "evaluated_at": now,
            "drift": state,
            "record": record,
            "activity_gap_variance": activity_gap_variance(record, now),
            "load": self.last_load,
            "intervention": self.intervention_status(),
        }


def build_storage(backend: str = "memory") -> SessionStorage:
    """Session storage for the configured backend"""
    if backend == "redis":
        return RedisSessionStorage(
            redis_url=settings.REDIS_URL,
            ttl_seconds=settings.SESSION_TTL_SECONDS,
        )
    if backend != "memory":
        logger.warning(f"Unknown storage backend '{backend}', using in-memory storage")
    return InMemorySessionStorage(ttl_seconds=settings.SESSION_TTL_SECONDS)


class MonitorRegistry:
    """
    Live monitors by session id, created lazily on first use

    With idle_ttl_seconds set, a monitor untouched for that long is evicted on
    the next lookup. Its persisted record is left to the storage TTL, so a
    session that returns before expiry picks its drift state back up.
    """

    def __init__(
        self,
        storage: Optional[SessionStorage] = None,
        clock: Optional[Clock] = None,
        phase_ms: int = BREATH_PHASE_MS,
        drive_with_drift: bool = False,
        idle_ttl_seconds: Optional[int] = None,
    ):
        self.storage = storage if storage is not None else InMemorySessionStorage()
        self.clock = clock
        self.phase_ms = phase_ms
        self.drive_with_drift = drive_with_drift
        self.idle_ttl_seconds = idle_ttl_seconds
        self.monitors: Dict[str, DriftMonitor] = {}
        self._last_seen: Dict[str, int] = {}
        # Sync endpoints run in a threadpool
        self._lock = threading.Lock()

    def _evict_idle(self, now: int) -> None:
        cutoff = now - self.idle_ttl_seconds * 1000
        idle = [sid for sid, seen in self._last_seen.items() if seen <= cutoff]
        for session_id in idle:
            monitor = self.monitors.pop(session_id)
            del self._last_seen[session_id]
            monitor.dismiss()
        if idle:
            logger.info(f"Evicted {len(idle)} idle drift monitor(s)")

    def get(self, session_id: str) -> DriftMonitor:
        now = read_clock(self.clock or system_clock)
        with self._lock:
            if self.idle_ttl_seconds is not None and now is not None:
                self._evict_idle(now)

            monitor = self.monitors.get(session_id)
            if monitor is None:
                monitor = DriftMonitor(
                    session_id,
                    storage=self.storage,
                    clock=self.clock,
                    phase_ms=self.phase_ms,
                    drive_with_drift=self.drive_with_drift,
                    key_prefix=settings.STORAGE_KEY_PREFIX,
                )
                self.monitors[session_id] = monitor
                logger.debug("Created drift monitor", extra={"session_id": session_id})
            if now is not None:
                self._last_seen[session_id] = now
            return monitor

    def discard(self, session_id: str) -> bool:
        """End a session: drop its monitor and its persisted record"""
        with self._lock:
            monitor = self.monitors.pop(session_id, None)
            self._last_seen.pop(session_id, None)
        if monitor is None:
            monitor = DriftMonitor(
                session_id, storage=self.storage, clock=self.clock, key_prefix=settings.STORAGE_KEY_PREFIX
            )
            monitor.store.discard()
            return False
        with monitor.lock:
            monitor.dismiss()
            monitor.store.discard()
        return True

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.monitors

    def __len__(self) -> int:
        return len(self.monitors)


# Global instance
monitor_registry = MonitorRegistry(
    storage=build_storage(settings.STORAGE_BACKEND),
    phase_ms=settings.BREATH_PHASE_MS,
    idle_ttl_seconds=settings.SESSION_TTL_SECONDS,
)


def get_monitor_registry() -> MonitorRegistry:
    """Dependency injection"""
    return monitor_registry
