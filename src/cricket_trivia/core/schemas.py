"""
Pydantic schemas for the JSON objects the generative service returns.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, AliasChoices


class QuestionPayload(BaseModel):
    """
    One quiz question as emitted by the model.
    """
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: int = Field(
        ...,
        ge=0,
        le=3,
        validation_alias=AliasChoices("correctAnswer", "correct_answer", "correct_index"),
    )
    explanation: str = "No explanation provided"
    source: Optional[str] = None
    anecdote_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("anecdoteRef", "anecdote_ref"),
    )

    @field_validator("question")
    @classmethod
    def _strip_question(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question must not be blank")
        return value

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _reject_non_integer(cls, value):
        # bool is an int subclass; "2" and 2.5 are not acceptable indexes either
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("correctAnswer must be an integer")
        return value

    @field_validator("options", mode="before")
    @classmethod
    def _stringify_options(cls, value):
        if isinstance(value, list):
            return [str(option).strip() for option in value]
        return value


class AnecdotePayload(BaseModel):
    """
    One Phase 1 anecdote as emitted by the model.
    """
    title: str = Field(..., min_length=1)
    story: str = Field(..., min_length=100)
    key_facts: List[str] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("key_facts", "keyFacts", "facts"),
    )
    sources: List[str] = []
    tags: List[str] = []

    @field_validator("key_facts", "sources", "tags", mode="before")
    @classmethod
    def _coerce_string_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(v).strip() for v in value if v is not None and str(v).strip()]
        return value


class GradeVerdict(BaseModel):
    """
    Validator verdict for a single candidate question.
    """
    accepted: bool
    grade: Optional[Literal["A", "B", "C"]] = None
