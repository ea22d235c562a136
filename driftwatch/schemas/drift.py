from typing import List, Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field


class DriftEventType(str, Enum):
    PROGRESS = "progress"
    CONTEXT_SWITCH = "context_switch"
    IDEA = "idea"
    ACTIVITY = "activity"
    OPEN_LOOPS = "open_loops"


class DriftEventInput(BaseModel):
    """A single inbound drift event"""
    event_type: DriftEventType
    count: Optional[int] = Field(default=None, description="Current open loop count, for open_loops events")


class DriftEventBatch(BaseModel):
    events: List[DriftEventInput] = Field(..., min_length=1)


class SignalsResponse(BaseModel):
    session_id: str
    evaluated_at: Optional[int] = None
    signals: Dict[str, bool]
    active_signals: List[str]
    active_signal_count: int = Field(..., ge=0, le=5)
    drift_level: int = Field(..., ge=0, le=100)
    is_triggered: bool
    band: str


class SignalRecordResponse(BaseModel):
    last_progress_at: Optional[int] = None
    tab_count: int
    previous_open_loop_count: int
    open_loop_count: int
    recent_idea_timestamps: List[int]
    recent_activity_timestamps: List[int]


class LoadCountsInput(BaseModel):
    """Open work counts from the task system; negative values read as 0"""
    open_projects: int = 0
    open_tasks: int = 0
    unprocessed_ideas: int = 0
    overdue_tasks: int = 0
    blocked_tasks: int = 0
    setback_tasks: int = 0


class ScenarioResponse(BaseModel):
    scenario_id: str
    title: str
    message: str
    tip: str


class InterventionResponse(BaseModel):
    state: str
    is_active: bool
    scenario: Optional[ScenarioResponse] = None
    phrase: Optional[str] = None
    phase: Optional[str] = None
    phase_prompt: Optional[str] = None
    phase_remaining_ms: Optional[int] = None
    audio_enabled: bool
    activation_count: int = 0
    activated_at: Optional[int] = None


class LoadGaugeResponse(BaseModel):
    ram_usage: int = Field(..., ge=0, le=100)
    emotional_load: int = Field(..., ge=0, le=100)
    logic_load: int = Field(..., ge=0, le=100)
    anxiety_level: int = Field(..., ge=0, le=100)
    status: str
    status_message: str
    alert: bool
    tin_man: str
    scarecrow: str
    lion: str


class LoadResponse(LoadGaugeResponse):
    intervention: InterventionResponse


class SessionStatusResponse(BaseModel):
    session_id: str
    drift: SignalsResponse
    record: SignalRecordResponse
    activity_gap_variance: Optional[float] = None
    load: Optional[LoadGaugeResponse] = Field(default=None, description="Most recent load report, if any")
    intervention: InterventionResponse
