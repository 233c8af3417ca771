"""
practice.py
-----------

Answer checking for practice questions.
"""

from ..schemas.documents import CivicsQuestion


def check_answer(question: CivicsQuestion, user_answer: str) -> dict:
    """
    Compare a user's answer with the canonical one.

    The answer counts as correct when, after trimming and lowercasing, either
    text contains the other.

    Returns:
        dict: `correct`, `canonical_answer`, `user_answer` and `feedback`.
    """
    canonical = question.answer.strip().lower()
    given = user_answer.strip().lower()
    correct = bool(given) and (given in canonical or canonical in given)
    return {
        "correct": correct,
        "canonical_answer": question.answer,
        "user_answer": user_answer,
        "feedback": "Correct!" if correct else f"The correct answer is: {question.answer}",
    }
