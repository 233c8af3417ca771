"""
events.py
---------

Parsing of realtime conversation events.

The conversational model emits JSON events over its data channel. This module
classifies them (user activity, assistant activity) and extracts
`request_practice_question` function calls from them.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from ..core.errors import MalformedEventError

logger = logging.getLogger(__name__)

PRACTICE_QUESTION_FUNCTION = "request_practice_question"

# Events that prove the user is engaged.
USER_ACTIVITY_EVENTS = frozenset({
    "input_audio_buffer.speech_started",
    "input_audio_buffer.speech_stopped",
    "input_audio_buffer.committed",
    "conversation.item.input_audio_transcription.completed",
})

# Assistant turn-taking; keeps the session alive but cannot end a warning period.
ASSISTANT_ACTIVITY_PREFIXES = ("response.", "output_audio_buffer.")


def is_user_activity(event: dict) -> bool:
    if event.get("type") in USER_ACTIVITY_EVENTS:
        return True
    # Typed messages arrive as conversation items with the user role.
    if event.get("type") == "conversation.item.created":
        item = event.get("item")
        return isinstance(item, dict) and item.get("role") == "user"
    return False


def is_assistant_activity(event: dict) -> bool:
    return str(event.get("type", "")).startswith(ASSISTANT_ACTIVITY_PREFIXES)


@dataclass(frozen=True)
class FunctionCall:
    call_id: Optional[str]
    name: str
    arguments: str

    @property
    def key(self) -> str:
        """Deduplication key: the call id, or name + arguments when none is given."""
        return self.call_id or f"{self.name}:{self.arguments}"


@dataclass(frozen=True)
class PracticeRequest:
    spoken_question: str
    category: Optional[str] = None
    malformed: bool = False


def extract_function_calls(event: dict) -> List[FunctionCall]:
    """
    Function calls carried by one event.

    Handles `response.done` (calls listed in `response.output`) and
    `response.function_call_arguments.done`.

    Raises:
        MalformedEventError: The event claims to carry calls but is malformed.
    """
    event_type = event.get("type")
    try:
        if event_type == "response.done":
            outputs = (event.get("response") or {}).get("output") or []
            return [
                FunctionCall(
                    call_id=output.get("call_id"),
                    name=output["name"],
                    arguments=output.get("arguments") or "",
                )
                for output in outputs
                if output.get("type") == "function_call"
            ]
        if event_type == "response.function_call_arguments.done":
            return [FunctionCall(
                call_id=event.get("call_id"),
                name=event["name"],
                arguments=event.get("arguments") or "",
            )]
    except (AttributeError, KeyError, TypeError) as e:
        raise MalformedEventError(f"Malformed {event_type} event: {e}") from e
    return []


def practice_calls(event: dict) -> List[FunctionCall]:
    return [c for c in extract_function_calls(event) if c.name == PRACTICE_QUESTION_FUNCTION]


def parse_practice_request(call: FunctionCall) -> PracticeRequest:
    """
    Read `question` and `category` from the call arguments.

    Malformed arguments do not drop the call: the raw argument text is used as
    the spoken question and the request is flagged `malformed`.
    """
    try:
        arguments = json.loads(call.arguments)
        question = arguments["question"]
        if not isinstance(question, str):
            raise TypeError("question is not a string")
        category = arguments.get("category")
        return PracticeRequest(spoken_question=question, category=category)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Malformed practice question arguments ({e}), using raw text")
        return PracticeRequest(spoken_question=call.arguments, malformed=True)
