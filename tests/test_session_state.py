from dataclasses import replace

import pytest

from citizenship_coach.session.state import (
    CallAccepted,
    CallSkipped,
    DisplayedQuestion,
    PauseRequested,
    Phase,
    QuestionResolved,
    ReconciliationState,
    ResumeRequested,
    SessionOpened,
    SessionStopped,
    normalize_text,
    reduce,
    should_update,
)

SUPREME_LAW = DisplayedQuestion(
    question_id=1,
    question="What is the supreme law of the land?",
    answer="the Constitution",
    category="Principles of Democracy",
    spoken_question="What is the supreme law of the land?",
)
SENATORS = DisplayedQuestion(
    question_id=18,
    question="How many U.S. Senators are there?",
    answer="one hundred (100)",
    category="System of Government",
    spoken_question="Hoa Kỳ có bao nhiêu thượng nghị sĩ?",
)


@pytest.fixture
def active():
    return reduce(ReconciliationState(), SessionOpened())


def test_open_starts_empty(active):
    assert active.phase is Phase.ACTIVE
    assert active.slot is None
    assert active.processed_call_ids == frozenset()
    assert active.generation == 1


def test_open_from_idle_clears_previous_state():
    stale = ReconciliationState(slot=SUPREME_LAW, processed_call_ids=frozenset({"a"}), generation=4)
    opened = reduce(stale, SessionOpened())
    assert opened.slot is None
    assert opened.processed_call_ids == frozenset()
    assert opened.generation == 5


def test_accepted_call_bumps_generation(active):
    state = reduce(active, CallAccepted("call_1", "What is the supreme law?"))
    assert "call_1" in state.processed_call_ids
    assert state.last_spoken == "What is the supreme law?"
    assert state.generation == active.generation + 1


def test_skipped_call_is_recorded(active):
    state = reduce(active, CallSkipped("call_1"))
    assert state.processed_call_ids == frozenset({"call_1"})
    assert state.generation == active.generation


def test_calls_ignored_when_idle():
    idle = ReconciliationState()
    assert reduce(idle, CallAccepted("call_1", "x")) is idle
    assert reduce(idle, CallSkipped("call_1")) is idle


def test_resolution_applies_for_current_generation(active):
    state = reduce(active, CallAccepted("call_1", SUPREME_LAW.spoken_question))
    state = reduce(state, QuestionResolved(state.generation, SUPREME_LAW))
    assert state.slot == SUPREME_LAW


def test_stale_resolution_is_dropped(active):
    first = reduce(active, CallAccepted("call_1", "first"))
    second = reduce(first, CallAccepted("call_2", "second"))
    assert reduce(second, QuestionResolved(first.generation, SUPREME_LAW)) is second


def test_pause_resume_restores_slot(active):
    state = replace(active, slot=SENATORS, last_spoken=SENATORS.spoken_question,
                    processed_call_ids=frozenset({"call_1"}))
    paused = reduce(state, PauseRequested(check_in_pending=True))
    assert paused.phase is Phase.PAUSED
    assert paused.slot == SENATORS
    assert paused.processed_call_ids == frozenset({"call_1"})
    assert paused.snapshot.check_in_pending is True

    resuming = reduce(paused, ResumeRequested())
    assert resuming.phase is Phase.RESUMING
    assert resuming.slot == SENATORS
    assert resuming.processed_call_ids == frozenset()
    assert resuming.last_spoken is None

    reopened = reduce(resuming, SessionOpened())
    assert reopened.phase is Phase.ACTIVE
    assert reopened.slot == SENATORS
    assert reopened.snapshot is None


def test_resolution_while_paused_updates_snapshot(active):
    state = reduce(active, CallAccepted("call_1", "senators"))
    paused = reduce(state, PauseRequested())
    resolved = reduce(paused, QuestionResolved(state.generation, SENATORS))
    assert resolved.slot == SENATORS
    assert resolved.snapshot.slot == SENATORS
    assert reduce(resolved, ResumeRequested()).slot == SENATORS


def test_invalid_transitions_are_noops(active):
    idle = ReconciliationState()
    assert reduce(idle, PauseRequested()) is idle
    assert reduce(idle, ResumeRequested()) is idle
    assert reduce(active, ResumeRequested()) is active


def test_stop_clears_everything(active):
    state = replace(active, slot=SENATORS, last_spoken="x", processed_call_ids=frozenset({"c"}))
    stopped = reduce(state, SessionStopped())
    assert stopped.phase is Phase.IDLE
    assert stopped.slot is None
    assert stopped.processed_call_ids == frozenset()
    assert stopped.generation == state.generation + 1


def test_unknown_action_raises(active):
    with pytest.raises(TypeError):
        reduce(active, object())


def test_normalize_text():
    assert normalize_text("  What is the SUPREME law?  ") == "what is the supreme law?"
    assert normalize_text(None) == ""


def test_should_update_first_question(active):
    assert should_update(active, "What is the supreme law of the land?")


def test_should_update_skips_repeat(active):
    state = replace(active, slot=SUPREME_LAW, last_spoken=SUPREME_LAW.question)
    assert not should_update(state, "  what is the SUPREME law of the land? ")


def test_should_update_different_question(active):
    state = replace(active, slot=SUPREME_LAW, last_spoken=SUPREME_LAW.question)
    assert should_update(state, "How many U.S. Senators are there?")


def test_should_update_heals_sidebar_mismatch(active):
    state = replace(active, slot=SUPREME_LAW, last_spoken="How many U.S. Senators are there?")
    assert should_update(state, "How many U.S. Senators are there?")
