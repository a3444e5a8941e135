"""Progress & qualification status schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel


class ProgressEntryRead(BaseModel):
    """One answered question.  Correct answers are never included."""

    question_id: uuid.UUID
    question_text: str
    answer: str
    is_correct: bool
    answered_at: datetime


class ProgressRead(BaseModel):
    """Caller's attempt progress for a season (latest attempt by default)."""

    has_attempt: bool
    attempt_id: uuid.UUID | None = None
    season_id: uuid.UUID | None = None
    completed: bool = False
    score: int = 0
    total_questions: int = 0
    answered_count: int = 0
    correct_count: int = 0
    percentage_score: int | None = None
    qualifies_for_next_round: bool | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: list[ProgressEntryRead] = []


class QualificationStatusRead(BaseModel):
    """Outcome of the caller's most recent completed attempt."""

    has_attempted: bool
    is_qualified: bool
    has_passed_qualification: bool
    score: int | None = None
    total_questions: int | None = None
    percentage_score: int | None = None
    minimum_score_percentage: int | None = None
    minimum_required: int | None = None
    last_qualification_attempt_at: datetime | None = None
    message: str
