"""
tools.py
--------

Client events sent to the realtime conversational model: the session tool
declaration and the fixed prompts used by practice sessions.
"""

from .events import PRACTICE_QUESTION_FUNCTION

PRACTICE_QUESTION_DESCRIPTION = (
    "MANDATORY: Call this function immediately after asking ANY citizenship test "
    "question, with the exact question text you just spoke. If you asked the "
    "question in another language, pass the English equivalent."
)

CHECK_IN_INSTRUCTIONS = (
    "Gently check in with the user. Ask if they would like a hint, want to hear "
    "the answer, or would like to try a different question. Keep it short and "
    "encouraging, with no pressure."
)

INACTIVITY_WARNING_INSTRUCTIONS = (
    "The user has been quiet for a while. Briefly ask if they are still there and "
    "let them know the session will pause soon to save resources if there is no response."
)

RESUME_INSTRUCTIONS = (
    "The user has resumed their practice session. Welcome them back in one short "
    "sentence and continue where you left off."
)


def practice_question_tool() -> dict:
    return {
        "type": "function",
        "name": PRACTICE_QUESTION_FUNCTION,
        "description": PRACTICE_QUESTION_DESCRIPTION,
        "parameters": {
            "type": "object",
            "strict": True,
            "properties": {
                "question": {
                    "type": "string",
                    "description": "The exact question you just spoke to the user",
                },
                "category": {
                    "type": "string",
                    "description": "Optional category (System of Government, "
                                   "Principles of Democracy, History, Geography, etc.)",
                },
            },
            "required": ["question"],
        },
    }


def session_update_event() -> dict:
    """`session.update` declaring the practice question tool."""
    return {
        "type": "session.update",
        "session": {
            "tools": [practice_question_tool()],
            "tool_choice": "auto",
        },
    }


def _response_create(instructions: str) -> dict:
    return {"type": "response.create", "response": {"instructions": instructions}}


def check_in_event() -> dict:
    return _response_create(CHECK_IN_INSTRUCTIONS)


def inactivity_warning_event() -> dict:
    return _response_create(INACTIVITY_WARNING_INSTRUCTIONS)


def resume_event() -> dict:
    return _response_create(RESUME_INSTRUCTIONS)
