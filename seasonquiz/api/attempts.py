"""Attempt lifecycle routes: start / resume and answer submission."""

import uuid
from typing import Union

from fastapi import APIRouter, Depends

from seasonquiz.api.deps import get_attempt_engine, get_current_user, require_submit_rate_limit
from seasonquiz.db.models import User
from seasonquiz.schemas.attempt import (
    AnswerProgressRead,
    AnswerSubmission,
    AttemptCompletedRead,
    AttemptStartRead,
    AttemptStartRequest,
    BatchResultRead,
    SubmissionRequest,
)
from seasonquiz.services.attempt_engine import AttemptEngine

router = APIRouter()


@router.post("/start", response_model=AttemptStartRead)
def start_attempt(
    body: AttemptStartRequest,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_attempt_engine),
):
    """Start the caller's attempt in the eligible season, or resume it.

    ``status`` is ``no_eligible_season`` (with no attempt) when nothing is
    open right now.
    """
    return engine.start_attempt(current_user.id, kind=body.kind, season_id=body.season_id)


@router.post(
    "/{attempt_id}/submissions",
    response_model=Union[AttemptCompletedRead, AnswerProgressRead, BatchResultRead],
    dependencies=[Depends(require_submit_rate_limit)],
)
def submit(
    attempt_id: uuid.UUID,
    body: SubmissionRequest,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_attempt_engine),
):
    """Submit one answer (``kind: "answer"``) or all answers (``kind: "batch"``)."""
    submission = body.root
    if isinstance(submission, AnswerSubmission):
        return engine.submit_answer(
            attempt_id, current_user.id, submission.question_id, submission.answer
        )
    return engine.submit_batch(attempt_id, current_user.id, submission.answers)
