"""
Overload Intervention Controller

Owns the interruptive calming flow shown once overload is judged to be
occurring:

1. Scenario selection: one "lost" scenario from a fixed catalog
2. Phrase selection: one calming phrase, chosen independently of the scenario
3. Breathing cycle: in -> hold -> out, 4s per phase, repeating while active
4. Ambient audio: optional, toggled independently of the state machine
5. Dismissal: user-initiated only, no timeout

State machine: IDLE -> ACTIVE -> IDLE. Activation is driven from outside
(the load gauge by default). Dismissal stops and rewinds audio but neither
resets drift state nor counts as progress, so a dismissed intervention can
re-trigger immediately.

The breathing cycle is advanced by explicit tick(now) calls instead of a
free-running timer; a host that stops ticking has nothing left to cancel.
"""
from typing import Callable, List, Optional, Protocol, Sequence, TypeVar
from dataclasses import dataclass
from enum import Enum
import logging
import random

from .load_gauge import CognitiveLoad

logger = logging.getLogger(__name__)

T = TypeVar("T")
Selector = Callable[[Sequence[T]], T]

BREATH_PHASE_MS = 4000


class InterventionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class BreathPhase(str, Enum):
    """Breathing exercise phases, in cycle order"""
    IN = "in"
    HOLD = "hold"
    OUT = "out"


BREATH_CYCLE: List[BreathPhase] = [BreathPhase.IN, BreathPhase.HOLD, BreathPhase.OUT]

BREATH_PROMPTS = {
    BreathPhase.IN: "Breathe In",
    BreathPhase.HOLD: "Hold",
    BreathPhase.OUT: "Breathe Out",
}


@dataclass(frozen=True)
class Scenario:
    """A 'lost off the road' framing for the intervention"""
    scenario_id: str
    title: str
    message: str
    tip: str


SCENARIOS: List[Scenario] = [
    Scenario(
        scenario_id="desert",
        title="Lost in the Desert",
        message="You've wandered too far from the Yellow Brick Road. The Emerald City is nowhere in sight.",
        tip="Close some projects to find your way back.",
    ),
    Scenario(
        scenario_id="space",
        title="Floating in Space",
        message="You've drifted so far off course, you're not even in Oz anymore.",
        tip="Ground yourself. Finish one thing.",
    ),
    Scenario(
        scenario_id="witch",
        title="The Witch's Domain",
        message="Too many distractions have led you to dangerous territory.",
        tip="Focus on what matters to escape.",
    ),
    Scenario(
        scenario_id="eggs",
        title="Sitting on Eggs",
        message="You're a chicken sitting on too many eggs. None of them are hatching.",
        tip="Pick ONE egg to nurture. Let the others go.",
    ),
    Scenario(
        scenario_id="tornado",
        title="Caught in the Tornado",
        message="Your mind is spinning. Everything is chaos. You can't focus on anything.",
        tip="Stop. Breathe. Pick one thing.",
    ),
]

CALMING_PHRASES: List[str] = [
    "You are not broken. Your OS just needs a reboot.",
    "One brick at a time builds the whole road.",
    "The Wizard believes in you. Now believe in yourself.",
    "Chaos is just energy without direction.",
    "Close a loop. Feel the relief.",
    "Your brain is powerful. Let's aim it.",
    "Not every idea needs action today.",
    "Progress over perfection. Always.",
    "The Emerald City is waiting. You'll get there.",
]


class AmbientAudio(Protocol):
    """Looping calming audio owned by the presentation layer"""

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def rewind(self) -> None: ...


class NullAudio:
    """Audio sink for hosts without playback"""

    def play(self) -> None:
        pass

    def pause(self) -> None:
        pass

    def rewind(self) -> None:
        pass


class BreathingCycle:
    """Three-phase breathing FSM advanced by elapsed time"""

    def __init__(self, phase_ms: int = BREATH_PHASE_MS):
        if phase_ms <= 0:
            raise ValueError("phase_ms must be positive")
        self.phase_ms = phase_ms
        self.phase = BreathPhase.IN
        self.phase_elapsed_ms = 0

    def restart(self):
        self.phase = BreathPhase.IN
        self.phase_elapsed_ms = 0

    def advance(self, elapsed_ms: int) -> BreathPhase:
        """
        Advance by elapsed time, crossing as many phase boundaries as it covers

        Negative elapsed time is ignored.
        """
        total = self.phase_elapsed_ms + max(0, int(elapsed_ms))
        steps, self.phase_elapsed_ms = divmod(total, self.phase_ms)
        index = (BREATH_CYCLE.index(self.phase) + steps) % len(BREATH_CYCLE)
        self.phase = BREATH_CYCLE[index]
        return self.phase

    @property
    def remaining_ms(self) -> int:
        return self.phase_ms - self.phase_elapsed_ms


class InterventionController:
    """
    Idle/Active controller for the calming intervention

    Args:
        selector: Picks one item from a catalog; defaults to uniform random
        audio: Ambient audio sink
        phase_ms: Duration of each breathing phase
        audio_enabled: Initial audio toggle
        session_id: Session tagged on log lines, if any
    """

    def __init__(
        self,
        selector: Optional[Selector] = None,
        audio: Optional[AmbientAudio] = None,
        phase_ms: int = BREATH_PHASE_MS,
        audio_enabled: bool = True,
        scenarios: Optional[Sequence[Scenario]] = None,
        phrases: Optional[Sequence[str]] = None,
        session_id: Optional[str] = None,
    ):
        self.log_context = {"session_id": session_id} if session_id else {}
        self.selector = selector or random.choice
        self.audio = audio or NullAudio()
        self.audio_enabled = audio_enabled
        self.scenarios = list(scenarios or SCENARIOS)
        self.phrases = list(phrases or CALMING_PHRASES)
        self.breathing = BreathingCycle(phase_ms)

        self.state = InterventionState.IDLE
        self.scenario: Optional[Scenario] = None
        self.phrase: Optional[str] = None
        self.activated_at: Optional[int] = None
        self.activation_count = 0
        self._last_tick: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.state == InterventionState.ACTIVE

    @property
    def phase(self) -> Optional[BreathPhase]:
        return self.breathing.phase if self.is_active else None

    def _play(self):
        try:
            self.audio.play()
        except Exception as e:
            logger.warning(f"Ambient audio failed to start: {e}", extra=self.log_context)

    def _stop(self):
        try:
            self.audio.pause()
            self.audio.rewind()
        except Exception as e:
            logger.warning(f"Ambient audio failed to stop: {e}", extra=self.log_context)

    def activate(self, now_ms: int, reason: str = "overload") -> bool:
        """
        Enter the active state

        Returns:
            True if this call activated the intervention, False if already active
        """
        if self.is_active:
            return False

        self.scenario = self.selector(self.scenarios)
        self.phrase = self.selector(self.phrases)
        self.state = InterventionState.ACTIVE
        self.activated_at = now_ms
        self.activation_count += 1
        self._last_tick = now_ms
        self.breathing.restart()

        if self.audio_enabled:
            self._play()

        logger.info(
            f"Intervention activated ({reason}): scenario={self.scenario.scenario_id}",
            extra=self.log_context,
        )
        return True

    def observe_load(self, load: CognitiveLoad, now_ms: int) -> bool:
        """Activate when the load gauge reports overload"""
        if load.is_overloaded and not self.is_active:
            return self.activate(now_ms, reason="overload")
        return False

    def tick(self, now_ms: int) -> Optional[BreathPhase]:
        """Advance the breathing cycle to now; a no-op while idle"""
        if not self.is_active:
            return None
        elapsed = now_ms - self._last_tick
        self._last_tick = max(self._last_tick, now_ms)
        return self.breathing.advance(elapsed)

    def dismiss(self) -> bool:
        """
        User dismissal: stop audio and return to idle

        Drift state is left untouched.

        Returns:
            True if an active intervention was dismissed
        """
        if not self.is_active:
            return False

        self._stop()
        self.state = InterventionState.IDLE
        self.scenario = None
        self.phrase = None
        self.activated_at = None
        self._last_tick = None
        self.breathing.restart()
        logger.info("Intervention dismissed", extra=self.log_context)
        return True

    def toggle_audio(self) -> bool:
        """Flip the audio toggle; returns the new setting"""
        self.audio_enabled = not self.audio_enabled
        if self.is_active:
            if self.audio_enabled:
                self._play()
            else:
                self._stop()
        return self.audio_enabled
