"""
Cognitive Load Gauge - Count-Based Overload Indicator

The gauge that gates the calming intervention. It reads only counts of open
work delivered by the task system and maps them onto a "RAM usage" metaphor:
every open project, task, unprocessed idea and overdue item occupies memory.

Separate from the drift signals: the drift model watches behavior, this gauge
watches backlog. Both stay independently queryable.
"""
from dataclasses import dataclass
from enum import Enum


class LoadStatus(str, Enum):
    """Overall load status bands"""
    STABLE = "stable"          # < 40
    ELEVATED = "elevated"      # 40-64
    CRITICAL = "critical"      # 65-84
    OVERLOAD = "overload"      # 85+, intervention gate


STATUS_MESSAGES = {
    LoadStatus.OVERLOAD: "Power grid critical. Pausing non-essential quests.",
    LoadStatus.CRITICAL: "Storm approaching. Consider closing some loops.",
    LoadStatus.ELEVATED: "Clouds gathering. Stay focused on current quests.",
    LoadStatus.STABLE: "All systems optimal.",
}


class TinManState(str, Enum):
    """Emotional processing readout, from emotional_load"""
    HEALTHY = "healthy"
    STRESSED = "stressed"
    BURNOUT = "burnout"


class ScarecrowState(str, Enum):
    """Planning and sequencing readout, from logic_load"""
    SHARP = "sharp"
    FOGGY = "foggy"
    SCATTERED = "scattered"


class LionState(str, Enum):
    """Confidence readout, from anxiety_level"""
    BRAVE = "brave"
    ANXIOUS = "anxious"
    FROZEN = "frozen"


# Character readouts share one banding: strained from 40, failing from 70
STRAINED_THRESHOLD = 40
FAILING_THRESHOLD = 70


def _band(value: int, calm, strained, failing):
    if value >= FAILING_THRESHOLD:
        return failing
    if value >= STRAINED_THRESHOLD:
        return strained
    return calm


def tin_man_state(emotional_load: int) -> TinManState:
    return _band(emotional_load, TinManState.HEALTHY, TinManState.STRESSED, TinManState.BURNOUT)


def scarecrow_state(logic_load: int) -> ScarecrowState:
    return _band(logic_load, ScarecrowState.SHARP, ScarecrowState.FOGGY, ScarecrowState.SCATTERED)


def lion_state(anxiety_level: int) -> LionState:
    return _band(anxiety_level, LionState.BRAVE, LionState.ANXIOUS, LionState.FROZEN)

# RAM cost per open item
PROJECT_WEIGHT = 15
TASK_WEIGHT = 3
IDEA_WEIGHT = 10
OVERDUE_WEIGHT = 8


@dataclass
class LoadCounts:
    """Open work counts reported by the task system"""
    open_projects: int = 0
    open_tasks: int = 0
    unprocessed_ideas: int = 0
    overdue_tasks: int = 0
    blocked_tasks: int = 0
    setback_tasks: int = 0

    def clamped(self) -> "LoadCounts":
        return LoadCounts(
            open_projects=max(0, self.open_projects),
            open_tasks=max(0, self.open_tasks),
            unprocessed_ideas=max(0, self.unprocessed_ideas),
            overdue_tasks=max(0, self.overdue_tasks),
            blocked_tasks=max(0, self.blocked_tasks),
            setback_tasks=max(0, self.setback_tasks),
        )


@dataclass
class CognitiveLoad:
    """Gauge readout, all metrics 0-100"""
    counts: LoadCounts
    ram_usage: int
    emotional_load: int
    logic_load: int
    anxiety_level: int
    status: LoadStatus
    status_message: str
    alert: bool
    tin_man: TinManState = TinManState.HEALTHY
    scarecrow: ScarecrowState = ScarecrowState.SHARP
    lion: LionState = LionState.BRAVE

    @property
    def is_overloaded(self) -> bool:
        return self.status == LoadStatus.OVERLOAD


def load_status(ram_usage: int) -> LoadStatus:
    if ram_usage >= 85:
        return LoadStatus.OVERLOAD
    if ram_usage >= 65:
        return LoadStatus.CRITICAL
    if ram_usage >= 40:
        return LoadStatus.ELEVATED
    return LoadStatus.STABLE


def compute_cognitive_load(counts: LoadCounts) -> CognitiveLoad:
    """Compute the load gauge from open work counts; negative counts read as 0"""
    c = counts.clamped()

    ram_usage = min(
        100,
        c.open_projects * PROJECT_WEIGHT
        + c.open_tasks * TASK_WEIGHT
        + c.unprocessed_ideas * IDEA_WEIGHT
        + c.overdue_tasks * OVERDUE_WEIGHT,
    )

    # Setbacks and blocks strain emotionally
    emotional_load = min(100, c.setback_tasks * 20 + c.blocked_tasks * 15 + c.overdue_tasks * 10)

    # Too many open items scatter thinking
    logic_load = min(100, c.open_tasks * 5 + c.unprocessed_ideas * 15)

    anxiety_level = min(
        100,
        c.overdue_tasks * 25 + c.blocked_tasks * 10 + (20 if c.open_projects > 3 else 0),
    )

    status = load_status(ram_usage)

    return CognitiveLoad(
        counts=c,
        ram_usage=ram_usage,
        emotional_load=emotional_load,
        logic_load=logic_load,
        anxiety_level=anxiety_level,
        status=status,
        status_message=STATUS_MESSAGES[status],
        alert=ram_usage >= 65 or emotional_load >= 60 or anxiety_level >= 60,
        tin_man=tin_man_state(emotional_load),
        scarecrow=scarecrow_state(logic_load),
        lion=lion_state(anxiety_level),
    )
