"""
Drift API Endpoints

Endpoints:
- /sessions/{id}/events: Feed progress, context switch, idea, activity and open loop events
- /sessions/{id}/signals: Read-only drift signal readout
- /sessions/{id}/load: Report open work counts; overload activates the intervention
- /sessions/{id}/intervention: Intervention state, breathing tick, dismiss, audio toggle
- /sessions/{id}/reset: Restore session-start drift state

Handlers are plain functions: session storage may be a blocking Redis client,
so FastAPI runs them in its threadpool and each takes the monitor lock.
"""
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional
import logging

from driftwatch.drift import (
    AggregateState,
    CognitiveLoad,
    DriftMonitor,
    LoadCounts,
    MonitorRegistry,
    get_monitor_registry,
)
from driftwatch.schemas.drift import (
    DriftEventBatch,
    DriftEventType,
    InterventionResponse,
    LoadCountsInput,
    LoadGaugeResponse,
    LoadResponse,
    ScenarioResponse,
    SessionStatusResponse,
    SignalRecordResponse,
    SignalsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _signals_response(session_id: str, state: AggregateState, now: Optional[int]) -> SignalsResponse:
    return SignalsResponse(
        session_id=session_id,
        evaluated_at=now,
        signals=state.signals.as_dict(),
        active_signals=[s.value for s in state.signals.active_signals],
        active_signal_count=state.active_signal_count,
        drift_level=state.drift_level,
        is_triggered=state.is_triggered,
        band=state.band.value,
    )


def _intervention_response(monitor: DriftMonitor) -> InterventionResponse:
    status = monitor.intervention_status()
    scenario = status.pop("scenario")
    return InterventionResponse(
        **status,
        scenario=ScenarioResponse(
            scenario_id=scenario.scenario_id,
            title=scenario.title,
            message=scenario.message,
            tip=scenario.tip,
        ) if scenario else None,
    )


def _load_fields(load: CognitiveLoad) -> dict:
    return {
        "ram_usage": load.ram_usage,
        "emotional_load": load.emotional_load,
        "logic_load": load.logic_load,
        "anxiety_level": load.anxiety_level,
        "status": load.status.value,
        "status_message": load.status_message,
        "alert": load.alert,
        "tin_man": load.tin_man.value,
        "scarecrow": load.scarecrow.value,
        "lion": load.lion.value,
    }


def _evaluate(monitor: DriftMonitor) -> SignalsResponse:
    now = monitor.now()
    return _signals_response(monitor.session_id, monitor.evaluate(now), now)


# ============== Drift Signal Endpoints ==============

@router.post("/sessions/{session_id}/events", response_model=SignalsResponse)
def record_events(
    session_id: str,
    batch: DriftEventBatch,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """
    Record drift events in arrival order and return the updated signals

    Event types:
    - progress: confirmed forward progress on tracked work
    - context_switch: a new browsing/view context was opened
    - idea: an unstructured idea was captured
    - activity: a raw pointer/keyboard interaction
    - open_loops: current open loop count (requires count)
    """
    for event in batch.events:
        if event.event_type == DriftEventType.OPEN_LOOPS and event.count is None:
            raise HTTPException(status_code=400, detail="open_loops events require a count")

    try:
        monitor = registry.get(session_id)
        with monitor.lock:
            for event in batch.events:
                if event.event_type == DriftEventType.PROGRESS:
                    monitor.record_progress()
                elif event.event_type == DriftEventType.CONTEXT_SWITCH:
                    monitor.record_context_switch()
                elif event.event_type == DriftEventType.IDEA:
                    monitor.record_idea_capture()
                elif event.event_type == DriftEventType.ACTIVITY:
                    monitor.record_activity()
                elif event.event_type == DriftEventType.OPEN_LOOPS:
                    monitor.update_open_loop_count(event.count)

            return _evaluate(monitor)

    except Exception as e:
        logger.error(f"Error recording drift events: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/sessions/{session_id}/signals", response_model=SignalsResponse)
def get_signals(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """Current drift signals, drift level and trigger state"""
    try:
        monitor = registry.get(session_id)
        with monitor.lock:
            return _evaluate(monitor)
    except Exception as e:
        logger.error(f"Error evaluating drift signals: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/sessions/{session_id}", response_model=SessionStatusResponse)
def get_session_status(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """Combined status readout: drift, raw record and intervention"""
    try:
        monitor = registry.get(session_id)
        with monitor.lock:
            status = monitor.status()
            record = status["record"]
            return SessionStatusResponse(
                session_id=session_id,
                drift=_signals_response(session_id, status["drift"], status["evaluated_at"]),
                record=SignalRecordResponse(
                    last_progress_at=record.last_progress_at,
                    tab_count=record.tab_count,
                    previous_open_loop_count=record.previous_open_loop_count,
                    open_loop_count=record.open_loop_count,
                    recent_idea_timestamps=record.recent_idea_timestamps,
                    recent_activity_timestamps=record.recent_activity_timestamps,
                ),
                activity_gap_variance=status["activity_gap_variance"],
                load=LoadGaugeResponse(**_load_fields(status["load"])) if status["load"] else None,
                intervention=_intervention_response(monitor),
            )
    except Exception as e:
        logger.error(f"Error reading session status: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/sessions/{session_id}/reset", response_model=SignalsResponse)
def reset_session(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """Restore session-start drift state"""
    try:
        monitor = registry.get(session_id)
        with monitor.lock:
            monitor.reset()
            return _evaluate(monitor)
    except Exception as e:
        logger.error(f"Error resetting drift state: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/sessions/{session_id}")
def end_session(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """End a session and discard its drift state"""
    existed = registry.discard(session_id)
    return {"session_id": session_id, "ended": existed}


# ============== Load & Intervention Endpoints ==============

@router.post("/sessions/{session_id}/load", response_model=LoadResponse)
def report_load(
    session_id: str,
    counts: LoadCountsInput,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """
    Report open work counts

    Computes the load gauge; an overload status activates the intervention
    if it is not already active.
    """
    try:
        monitor = registry.get(session_id)
        with monitor.lock:
            load = monitor.observe_load(LoadCounts(**counts.model_dump()))
            return LoadResponse(
                **_load_fields(load),
                intervention=_intervention_response(monitor),
            )
    except Exception as e:
        logger.error(f"Error computing cognitive load: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/sessions/{session_id}/intervention", response_model=InterventionResponse)
def get_intervention(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    monitor = registry.get(session_id)
    with monitor.lock:
        return _intervention_response(monitor)


@router.post("/sessions/{session_id}/intervention/tick", response_model=InterventionResponse)
def tick_intervention(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """Advance the breathing cycle to the current time"""
    monitor = registry.get(session_id)
    with monitor.lock:
        monitor.tick()
        return _intervention_response(monitor)


@router.post("/sessions/{session_id}/intervention/dismiss", response_model=InterventionResponse)
def dismiss_intervention(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    """Dismiss the intervention. Drift state is left as is."""
    monitor = registry.get(session_id)
    with monitor.lock:
        monitor.dismiss()
        return _intervention_response(monitor)


@router.post("/sessions/{session_id}/intervention/audio", response_model=InterventionResponse)
def toggle_intervention_audio(
    session_id: str,
    registry: MonitorRegistry = Depends(get_monitor_registry)
):
    monitor = registry.get(session_id)
    with monitor.lock:
        monitor.toggle_audio()
        return _intervention_response(monitor)
