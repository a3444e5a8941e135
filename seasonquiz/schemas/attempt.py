"""Attempt schemas."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, RootModel

from seasonquiz.schemas.question import QuestionRead
from seasonquiz.schemas.season import SeasonKind


class AttemptStartRequest(BaseModel):
    """POST /api/attempts/start: begin or resume the caller's attempt.

    Either name the season explicitly or let the engine infer the active
    season of the requested kind.
    """

    kind: SeasonKind = SeasonKind.QUALIFICATION
    season_id: uuid.UUID | None = None


class StartStatus(str, Enum):
    STARTED = "started"
    RESUMED = "resumed"
    NO_ELIGIBLE_SEASON = "no_eligible_season"


class AttemptStartRead(BaseModel):
    """Result of a start call; ``attempt_id`` is None when no season is open."""

    status: StartStatus
    attempt_id: uuid.UUID | None = None
    season_id: uuid.UUID | None = None
    questions: list[QuestionRead] = []
    total_questions: int = 0
    minimum_score_percentage: int | None = None
    answered_question_ids: list[uuid.UUID] = []
    started_at: datetime | None = None
    detail: str | None = None


# ── Submissions (tagged by ``kind``) ─────────────────────────────────────────


class AnswerItem(BaseModel):
    question_id: uuid.UUID
    answer: str = Field(max_length=1000)


class AnswerSubmission(AnswerItem):
    """A single answer, graded immediately."""

    kind: Literal["answer"]


class BatchSubmission(BaseModel):
    """All remaining answers at once; always finalizes the attempt."""

    kind: Literal["batch"]
    answers: list[AnswerItem] = Field(max_length=500)


Submission = Annotated[
    Union[AnswerSubmission, BatchSubmission], Field(discriminator="kind")
]


class AnswerProgressRead(BaseModel):
    """Per-question result while the attempt is still in progress."""

    completed: Literal[False] = False
    attempt_id: uuid.UUID
    question_id: uuid.UUID
    is_correct: bool
    answered_count: int
    total_questions: int
    correct_count: int


class AttemptCompletedRead(BaseModel):
    """Per-question result for the submission that sealed the attempt."""

    completed: Literal[True] = True
    attempt_id: uuid.UUID
    question_id: uuid.UUID
    is_correct: bool
    score: int
    total_questions: int
    percentage_score: int
    minimum_score_percentage: int
    qualifies_for_next_round: bool


class BatchResultRead(BaseModel):
    """Outcome of a batch submission."""

    attempt_id: uuid.UUID
    score: int
    total_questions: int
    percentage_score: int
    minimum_score_percentage: int
    passed: bool


class AttemptSummaryRead(BaseModel):
    """Admin listing row."""

    id: uuid.UUID
    user_id: uuid.UUID
    season_id: uuid.UUID | None = None
    email: str
    score: int
    total_questions: int
    answered_count: int
    percentage_score: int
    completed: bool
    qualifies_for_next_round: bool
    started_at: datetime
    completed_at: datetime | None = None


class SubmissionRequest(RootModel[Submission]):
    """Request body for ``POST /api/attempts/{id}/submissions``."""
