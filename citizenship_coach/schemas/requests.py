"""
requests.py
------------

Defines the **Pydantic request models** for the Citizenship Coach API.

### Supported Endpoints
- `/search`
- `/enhance-message`
- `/check-answer`
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SearchRequest(BaseModel):
    """
    Request body for `/search`.

    Attributes:
        query (str): Free-text query, any language.
        limit (int): Maximum number of results.
        user_id (Optional[str]): Caller identity for analytics.
    """
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    limit: int = Field(default=5, ge=1, le=100)
    user_id: Optional[str] = Field(default=None, alias="userId")


class EnhanceMessageRequest(BaseModel):
    message: Optional[str] = None


class CheckAnswerRequest(BaseModel):
    """Request body for `/check-answer`."""
    model_config = ConfigDict(populate_by_name=True)

    question_id: Optional[int] = Field(default=None, alias="questionId")
    user_answer: Optional[str] = Field(default=None, alias="userAnswer")
