import json

import pytest

from citizenship_coach.core.errors import MalformedEventError
from citizenship_coach.session.events import (
    FunctionCall,
    PRACTICE_QUESTION_FUNCTION,
    extract_function_calls,
    is_assistant_activity,
    is_user_activity,
    parse_practice_request,
    practice_calls,
)
from citizenship_coach.session.tools import session_update_event


def test_calls_from_response_done():
    event = {
        "type": "response.done",
        "response": {"output": [
            {"type": "message", "content": []},
            {"type": "function_call", "name": PRACTICE_QUESTION_FUNCTION,
             "call_id": "call_1", "arguments": '{"question": "What is an amendment?"}'},
            {"type": "function_call", "name": "other_tool", "call_id": "call_2", "arguments": "{}"},
        ]},
    }
    assert [c.call_id for c in extract_function_calls(event)] == ["call_1", "call_2"]
    assert [c.call_id for c in practice_calls(event)] == ["call_1"]


def test_calls_from_arguments_done():
    event = {"type": "response.function_call_arguments.done", "name": PRACTICE_QUESTION_FUNCTION,
             "arguments": '{"question": "x"}'}
    (call,) = extract_function_calls(event)
    assert call.call_id is None
    assert call.key == PRACTICE_QUESTION_FUNCTION + ':{"question": "x"}'


def test_other_events_carry_no_calls():
    assert extract_function_calls({"type": "session.created"}) == []
    assert extract_function_calls({"type": "response.done", "response": {}}) == []


def test_malformed_call_raises():
    with pytest.raises(MalformedEventError):
        extract_function_calls({"type": "response.done", "response": {"output": ["oops"]}})


def test_parse_practice_request():
    call = FunctionCall("c", PRACTICE_QUESTION_FUNCTION,
                        json.dumps({"question": "Who wrote the Declaration?", "category": "History"}))
    request = parse_practice_request(call)
    assert request.spoken_question == "Who wrote the Declaration?"
    assert request.category == "History"
    assert not request.malformed


@pytest.mark.parametrize("arguments", ["{not json", '{"category": "History"}', '{"question": 5}', "[]"])
def test_parse_malformed_arguments_keeps_raw_text(arguments):
    request = parse_practice_request(FunctionCall("c", PRACTICE_QUESTION_FUNCTION, arguments))
    assert request.malformed
    assert request.spoken_question == arguments


def test_activity_classification():
    assert is_user_activity({"type": "input_audio_buffer.speech_started"})
    assert not is_user_activity({"type": "response.created"})
    assert is_user_activity({"type": "conversation.item.created", "item": {"role": "user"}})
    assert not is_user_activity({"type": "conversation.item.created", "item": {"role": "assistant"}})
    assert not is_user_activity({"type": "conversation.item.created"})
    assert is_assistant_activity({"type": "response.audio.delta"})
    assert is_assistant_activity({"type": "output_audio_buffer.stopped"})
    assert not is_assistant_activity({"type": "input_audio_buffer.committed"})


def test_session_update_declares_practice_tool():
    event = session_update_event()
    assert event["type"] == "session.update"
    (tool,) = event["session"]["tools"]
    assert tool["name"] == PRACTICE_QUESTION_FUNCTION
    assert tool["parameters"]["required"] == ["question"]
