"""
Drift Detection Module

Infers cognitive drift (losing focus, spiraling, overload) from indirect
interaction signals and drives a calming intervention.

Components:
1. Signal Store: session-scoped rolling counters and timelines
2. Signal Extractors: five boolean drift indicators
3. Aggregator: active count, 0-100 drift level, trigger
4. Load Gauge: count-based overload indicator gating the intervention
5. Intervention Controller: scenario/phrase selection, breathing cycle, audio
6. Drift Monitor: per-session context tying the above together
"""

from .clock import Clock, ManualClock, system_clock

from .signal_store import (
    SignalRecord,
    SignalStore,
    SessionStorage,
    InMemorySessionStorage,
    RedisSessionStorage,
)

from .extractors import (
    DriftSignal,
    SignalVector,
    time_bleed,
    tab_cascade,
    idea_storm,
    emotional_spike,
    loop_expansion,
    activity_gap_variance,
    extract_signals,
)

from .aggregator import (
    AggregateState,
    DriftBand,
    SIGNAL_WEIGHTS,
    aggregate,
    drift_band,
    drift_level,
    evaluate_record,
)

from .load_gauge import (
    CognitiveLoad,
    LoadCounts,
    LoadStatus,
    LionState,
    ScarecrowState,
    TinManState,
    compute_cognitive_load,
)

from .intervention import (
    AmbientAudio,
    BreathPhase,
    BreathingCycle,
    InterventionController,
    InterventionState,
    NullAudio,
    Scenario,
    SCENARIOS,
    CALMING_PHRASES,
)

from .monitor import (
    DriftMonitor,
    MonitorRegistry,
    get_monitor_registry,
)

__all__ = [
    # Clock
    "Clock",
    "ManualClock",
    "system_clock",
    # Signal Store
    "SignalRecord",
    "SignalStore",
    "SessionStorage",
    "InMemorySessionStorage",
    "RedisSessionStorage",
    # Extractors
    "DriftSignal",
    "SignalVector",
    "time_bleed",
    "tab_cascade",
    "idea_storm",
    "emotional_spike",
    "loop_expansion",
    "activity_gap_variance",
    "extract_signals",
    # Aggregator
    "AggregateState",
    "DriftBand",
    "SIGNAL_WEIGHTS",
    "aggregate",
    "drift_band",
    "drift_level",
    "evaluate_record",
    # Load Gauge
    "CognitiveLoad",
    "LoadCounts",
    "LoadStatus",
    "LionState",
    "ScarecrowState",
    "TinManState",
    "compute_cognitive_load",
    # Intervention
    "AmbientAudio",
    "BreathPhase",
    "BreathingCycle",
    "InterventionController",
    "InterventionState",
    "NullAudio",
    "Scenario",
    "SCENARIOS",
    "CALMING_PHRASES",
    # Monitor
    "DriftMonitor",
    "MonitorRegistry",
    "get_monitor_registry",
]
