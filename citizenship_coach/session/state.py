"""
state.py
--------

Reconciliation state of a practice session.

The whole state is one immutable `ReconciliationState` value, moved between
phases by `reduce(state, action)`:

    IDLE --SessionOpened--> ACTIVE --PauseRequested--> PAUSED
    PAUSED --ResumeRequested--> RESUMING --SessionOpened--> ACTIVE
    any --SessionStopped--> IDLE

A pause keeps the displayed slot and processed calls; resume restores the
slot from the pause snapshot and starts the new connection with an empty
processed set. Every change that makes pending lookups stale bumps
`generation`, and a `QuestionResolved` only applies when its generation is
still current.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union


class Phase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    RESUMING = "resuming"


@dataclass(frozen=True)
class DisplayedQuestion:
    question_id: int
    question: str
    answer: str
    category: str
    spoken_question: str

    def to_dict(self) -> dict:
        return {
            "id": self.question_id,
            "question": self.question,
            "answer": self.answer,
            "category": self.category,
            "spokenQuestion": self.spoken_question,
        }


@dataclass(frozen=True)
class PauseSnapshot:
    slot: Optional[DisplayedQuestion]
    last_spoken: Optional[str]
    check_in_pending: bool = False


@dataclass(frozen=True)
class ReconciliationState:
    phase: Phase = Phase.IDLE
    slot: Optional[DisplayedQuestion] = None
    last_spoken: Optional[str] = None
    processed_call_ids: frozenset = field(default_factory=frozenset)
    snapshot: Optional[PauseSnapshot] = None
    generation: int = 0


# --- Actions ---------------------------------------------------------------

@dataclass(frozen=True)
class SessionOpened:
    pass


@dataclass(frozen=True)
class PauseRequested:
    check_in_pending: bool = False


@dataclass(frozen=True)
class ResumeRequested:
    pass


@dataclass(frozen=True)
class SessionStopped:
    pass


@dataclass(frozen=True)
class CallSkipped:
    key: str


@dataclass(frozen=True)
class CallAccepted:
    key: str
    spoken_question: str


@dataclass(frozen=True)
class QuestionResolved:
    generation: int
    question: DisplayedQuestion


Action = Union[
    SessionOpened, PauseRequested, ResumeRequested, SessionStopped,
    CallSkipped, CallAccepted, QuestionResolved,
]


def reduce(state: ReconciliationState, action: Action) -> ReconciliationState:
    """Return the state after `action`. Actions invalid in the current phase are no-ops."""
    if isinstance(action, SessionOpened):
        if state.phase is Phase.RESUMING:
            # Reconnect after a pause keeps the restored slot.
            return replace(state, phase=Phase.ACTIVE, snapshot=None)
        return ReconciliationState(phase=Phase.ACTIVE, generation=state.generation + 1)

    if isinstance(action, PauseRequested):
        if state.phase not in (Phase.ACTIVE, Phase.RESUMING):
            return state
        snapshot = PauseSnapshot(
            slot=state.slot,
            last_spoken=state.last_spoken,
            check_in_pending=action.check_in_pending,
        )
        return replace(state, phase=Phase.PAUSED, snapshot=snapshot)

    if isinstance(action, ResumeRequested):
        if state.phase is not Phase.PAUSED:
            return state
        slot = state.snapshot.slot if state.snapshot else state.slot
        return replace(
            state,
            phase=Phase.RESUMING,
            slot=slot,
            last_spoken=None,
            processed_call_ids=frozenset(),
        )

    if isinstance(action, SessionStopped):
        return ReconciliationState(generation=state.generation + 1)

    if isinstance(action, CallSkipped):
        if state.phase is Phase.IDLE:
            return state
        return replace(state, processed_call_ids=state.processed_call_ids | {action.key})

    if isinstance(action, CallAccepted):
        if state.phase is Phase.IDLE:
            return state
        return replace(
            state,
            processed_call_ids=state.processed_call_ids | {action.key},
            last_spoken=action.spoken_question,
            generation=state.generation + 1,
        )

    if isinstance(action, QuestionResolved):
        if action.generation != state.generation or state.phase is Phase.IDLE:
            return state
        snapshot = state.snapshot
        if state.phase is Phase.PAUSED and snapshot is not None:
            snapshot = replace(snapshot, slot=action.question)
        return replace(state, slot=action.question, snapshot=snapshot)

    raise TypeError(f"Unknown action: {action!r}")


def normalize_text(text: Optional[str]) -> str:
    return (text or "").strip().casefold()


def should_update(state: ReconciliationState, spoken_question: str) -> bool:
    """
    Whether a newly spoken question warrants a slot update.

    True when no question was spoken yet this session, when it differs from
    the last spoken one, or when the displayed slot no longer shows it.
    """
    spoken = normalize_text(spoken_question)
    is_first = state.last_spoken is None
    is_different = normalize_text(state.last_spoken) != spoken
    sidebar_mismatch = state.slot is None or normalize_text(state.slot.question) != spoken
    return is_first or is_different or sidebar_mismatch
