"""Attempt engine: the NotStarted → InProgress → Completed state machine.

Each public method is one unit of work against the request session: it
commits when it returns and rolls back when it raises, so a failed call never
leaves half-written progress behind.  Attempt and progress rows are only ever
written from here, through :mod:`seasonquiz.services.attempt_store`.

Serialisation per attempt comes from locking the attempt row for the whole
submission; the store's unique constraints and the conditional completion
UPDATE back that up when two requests race anyway.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from seasonquiz.config import settings
from seasonquiz.core.errors import (
    ConflictError,
    EngineError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from seasonquiz.db.models import Attempt, Season, User
from seasonquiz.schemas.attempt import (
    AnswerItem,
    AnswerProgressRead,
    AttemptCompletedRead,
    AttemptStartRead,
    BatchResultRead,
    StartStatus,
)
from seasonquiz.schemas.progress import (
    ProgressEntryRead,
    ProgressRead,
    QualificationStatusRead,
)
from seasonquiz.schemas.season import SeasonKind
from seasonquiz.schemas.user import DisqualificationRead
from seasonquiz.services import attempt_store, question_bank, season_registry
from seasonquiz.services.grading import grade_answer
from seasonquiz.services.qualification import Decision, decide, minimum_correct

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def threshold_for(season: Season | None) -> int:
    """Minimum percentage needed to qualify in *season*."""
    if season is None or season.minimum_score_percentage is None:
        return settings.DEFAULT_MINIMUM_SCORE_PERCENTAGE
    return season.minimum_score_percentage


class AttemptEngine:
    """Start, answer, complete and inspect quiz attempts for one DB session."""

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None) -> None:
        self.db = db
        self._clock = clock or _utcnow

    # ── Plumbing ─────────────────────────────────────────────────────────

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except EngineError as exc:
            self.db.rollback()
            logger.info("%s: %s", exc.code, exc.message)
            raise
        except Exception:
            self.db.rollback()
            raise

    def _get_user(self, user_id: uuid.UUID) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found", code="user_not_found")
        return user

    def _locked_attempt(self, attempt_id: uuid.UUID, user_id: uuid.UUID) -> Attempt:
        attempt = attempt_store.lock_attempt(self.db, attempt_id)
        # Someone else's attempt is reported exactly like a missing one
        if attempt is None or attempt.user_id != user_id:
            raise NotFoundError("Attempt not found", code="attempt_not_found")
        if attempt.completed:
            raise ConflictError(
                "This attempt has already been completed", code="attempt_already_completed"
            )
        if self._get_user(user_id).is_disqualified:
            raise ForbiddenError(
                "You have been disqualified from the competition",
                code="user_disqualified",
            )
        return attempt

    # ── Start ────────────────────────────────────────────────────────────

    def start_attempt(
        self,
        user_id: uuid.UUID,
        kind: SeasonKind = SeasonKind.QUALIFICATION,
        season_id: uuid.UUID | None = None,
    ) -> AttemptStartRead:
        """Begin, or idempotently resume, the user's attempt for a season.

        The season is *season_id* when given (it must be active and open),
        otherwise the currently eligible season of *kind*.  No open season is
        a normal outcome and is reported through ``status``.

        Raises:
            ForbiddenError: disqualified user, or the season's access rules
                exclude them.
            ConflictError: the user already completed this season.
        """
        now = self._clock()
        with self._transaction():
            user = self._get_user(user_id)
            if user.is_disqualified:
                raise ForbiddenError(
                    "You have been disqualified from the competition",
                    code="user_disqualified",
                )

            if season_id is not None:
                season = season_registry.get_season_if_eligible(self.db, season_id, now)
            else:
                season = season_registry.get_eligible_season(self.db, kind, now)
            if season is None:
                return AttemptStartRead(
                    status=StartStatus.NO_ELIGIBLE_SEASON,
                    detail="No active season is open right now",
                )

            self._check_access(user, season)

            existing = attempt_store.find_attempt(self.db, user.id, season.id)
            if existing is not None:
                return self._resume(existing, season)

            questions = question_bank.questions_for_season(self.db, season.id)
            if not questions:
                return AttemptStartRead(
                    status=StartStatus.NO_ELIGIBLE_SEASON,
                    season_id=season.id,
                    detail="no questions",
                )

            try:
                attempt = attempt_store.create_attempt(
                    self.db, user.id, season.id, len(questions), now
                )
            except ConflictError:
                # Lost the creation race: hand back the winner's attempt
                self.db.rollback()
                logger.info("Concurrent start for user %s season %s, resuming", user.id, season.id)
                winner = attempt_store.find_attempt(self.db, user_id, season.id)
                if winner is None:
                    raise
                return self._resume(winner, winner.season)

            logger.info(
                "Started attempt %s for user %s in season %s (%d questions)",
                attempt.id, user.id, season.id, len(questions),
            )
            return AttemptStartRead(
                status=StartStatus.STARTED,
                attempt_id=attempt.id,
                season_id=season.id,
                questions=question_bank.client_view(questions),
                total_questions=attempt.total_questions,
                minimum_score_percentage=threshold_for(season),
                started_at=attempt.started_at,
            )

    @staticmethod
    def _check_access(user: User, season: Season) -> None:
        if season.is_qualification_round:
            if user.has_passed_qualification:
                raise ForbiddenError(
                    "You have already passed the qualification round",
                    code="already_qualified",
                )
        elif season.requires_qualification and not user.has_passed_qualification:
            raise ForbiddenError(
                "You must pass the qualification round first",
                code="qualification_required",
            )

    def _resume(self, attempt: Attempt, season: Season) -> AttemptStartRead:
        if attempt.completed:
            raise ConflictError(
                "You have already completed this season", code="attempt_already_completed"
            )
        answered = [row.question_id for row in attempt_store.progress_rows(self.db, attempt.id)]
        questions = question_bank.questions_for_season(self.db, season.id)
        logger.info("Resumed attempt %s (%d answered)", attempt.id, len(answered))
        return AttemptStartRead(
            status=StartStatus.RESUMED,
            attempt_id=attempt.id,
            season_id=season.id,
            questions=question_bank.client_view(questions),
            total_questions=attempt.total_questions,
            minimum_score_percentage=threshold_for(season),
            answered_question_ids=answered,
            started_at=attempt.started_at,
        )

    # ── Submit ───────────────────────────────────────────────────────────

    def submit_answer(
        self,
        attempt_id: uuid.UUID,
        user_id: uuid.UUID,
        question_id: uuid.UUID,
        answer: str,
    ) -> AnswerProgressRead | AttemptCompletedRead:
        """Grade and store one answer; the last answer completes the attempt.

        Raises:
            NotFoundError: unknown attempt (or not the caller's), or a
                question outside the attempt's season.
            ConflictError: attempt completed, or question already answered.
        """
        now = self._clock()
        with self._transaction():
            attempt = self._locked_attempt(attempt_id, user_id)

            question = question_bank.get_question(self.db, question_id)
            if question is None or question.season_id != attempt.season_id:
                raise NotFoundError("Question not found", code="question_not_found")
            if attempt_store.has_progress(self.db, attempt.id, question.id):
                raise ConflictError(
                    "This question has already been answered", code="already_answered"
                )

            is_correct = grade_answer(answer, question.correct_answer)
            attempt_store.record_progress(
                self.db, attempt.id, question.id, answer, is_correct, now
            )
            answered, correct = attempt_store.progress_counts(self.db, attempt.id)

            if answered < attempt.total_questions:
                return AnswerProgressRead(
                    attempt_id=attempt.id,
                    question_id=question.id,
                    is_correct=is_correct,
                    answered_count=answered,
                    total_questions=attempt.total_questions,
                    correct_count=correct,
                )

            decision, threshold = self._complete(attempt, correct, now)
            return AttemptCompletedRead(
                attempt_id=attempt.id,
                question_id=question.id,
                is_correct=is_correct,
                score=min(correct, attempt.total_questions),
                total_questions=attempt.total_questions,
                percentage_score=decision.percentage,
                minimum_score_percentage=threshold,
                qualifies_for_next_round=decision.qualifies,
            )

    def submit_batch(
        self,
        attempt_id: uuid.UUID,
        user_id: uuid.UUID,
        answers: Sequence[AnswerItem],
    ) -> BatchResultRead:
        """Score all remaining answers in one pass and complete the attempt.

        Questions already answered one at a time keep their stored answer.
        Unanswered questions count as wrong.

        Raises:
            NotFoundError: unknown attempt or not the caller's.
            ConflictError: attempt already completed.
            ValidationError: duplicate question ids or questions outside the
                attempt's season.
        """
        now = self._clock()
        with self._transaction():
            attempt = self._locked_attempt(attempt_id, user_id)

            ids = [item.question_id for item in answers]
            if len(set(ids)) != len(ids):
                raise ValidationError(
                    "Each question may be answered only once", code="invalid_answers"
                )
            season_ids = question_bank.season_question_ids(self.db, attempt.season_id)
            unknown = [str(qid) for qid in ids if qid not in season_ids]
            if unknown:
                raise ValidationError(
                    "Answers reference questions outside this season",
                    code="invalid_answers",
                    details={"question_ids": unknown},
                )

            already = {row.question_id for row in attempt_store.progress_rows(self.db, attempt.id)}
            pending = [item for item in answers if item.question_id not in already]
            key = question_bank.correct_answers(self.db, [item.question_id for item in pending])
            for item in pending:
                attempt_store.record_progress(
                    self.db,
                    attempt.id,
                    item.question_id,
                    item.answer,
                    grade_answer(item.answer, key.get(item.question_id)),
                    now,
                )

            _, correct = attempt_store.progress_counts(self.db, attempt.id)
            decision, threshold = self._complete(attempt, correct, now)
            return BatchResultRead(
                attempt_id=attempt.id,
                score=min(correct, attempt.total_questions),
                total_questions=attempt.total_questions,
                percentage_score=decision.percentage,
                minimum_score_percentage=threshold,
                passed=decision.qualifies,
            )

    def _complete(self, attempt: Attempt, correct: int, now: datetime) -> tuple[Decision, int]:
        """Seal *attempt* and, for qualification rounds, the user's flag."""
        season = attempt.season
        threshold = threshold_for(season)
        # Questions added to the season after start are not part of the snapshot
        score = min(correct, attempt.total_questions)
        decision = decide(score, attempt.total_questions, threshold)

        attempt_store.complete_attempt(
            self.db,
            attempt.id,
            score=score,
            percentage=decision.percentage,
            qualifies=decision.qualifies,
            completed_at=now,
        )
        if season is not None and season.is_qualification_round:
            user = self._get_user(attempt.user_id)
            user.has_passed_qualification = decision.qualifies
            user.last_qualification_attempt_at = now
            self.db.flush()

        logger.info(
            "Completed attempt %s: %d/%d (%d%%, threshold %d%%) qualifies=%s",
            attempt.id, score, attempt.total_questions,
            decision.percentage, threshold, decision.qualifies,
        )
        return decision, threshold

    # ── Reads ────────────────────────────────────────────────────────────

    def get_progress(
        self, user_id: uuid.UUID, season_id: uuid.UUID | None = None
    ) -> ProgressRead:
        """The user's attempt for *season_id*, or their latest attempt."""
        if season_id is not None:
            attempt = attempt_store.find_attempt(self.db, user_id, season_id)
        else:
            attempt = attempt_store.latest_attempt(self.db, user_id)
        if attempt is None:
            return ProgressRead(has_attempt=False)

        rows = attempt_store.progress_rows(self.db, attempt.id)
        return ProgressRead(
            has_attempt=True,
            attempt_id=attempt.id,
            season_id=attempt.season_id,
            completed=attempt.completed,
            score=attempt.score,
            total_questions=attempt.total_questions,
            answered_count=len(rows),
            correct_count=sum(1 for row in rows if row.is_correct),
            percentage_score=attempt.percentage_score if attempt.completed else None,
            qualifies_for_next_round=(
                attempt.qualifies_for_next_round if attempt.completed else None
            ),
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            progress=[
                ProgressEntryRead(
                    question_id=row.question_id,
                    question_text=row.question.text,
                    answer=row.answer,
                    is_correct=row.is_correct,
                    answered_at=row.answered_at,
                )
                for row in rows
            ],
        )

    def qualification_status(self, user_id: uuid.UUID) -> QualificationStatusRead:
        """Outcome of the user's most recent completed attempt."""
        user = self._get_user(user_id)
        attempt = attempt_store.latest_attempt(self.db, user.id, completed_only=True)
        if attempt is None:
            return QualificationStatusRead(
                has_attempted=False,
                is_qualified=False,
                has_passed_qualification=user.has_passed_qualification,
                last_qualification_attempt_at=user.last_qualification_attempt_at,
                message="You have not completed a quiz yet",
            )

        threshold = threshold_for(attempt.season)
        required = minimum_correct(attempt.total_questions, threshold)
        if attempt.qualifies_for_next_round:
            message = (
                f"Congratulations! You scored {attempt.percentage_score}% "
                "and qualified for the next round"
            )
        else:
            message = (
                f"You scored {attempt.percentage_score}%. At least {required} of "
                f"{attempt.total_questions} correct answers ({threshold}%) are needed to qualify"
            )
        return QualificationStatusRead(
            has_attempted=True,
            is_qualified=attempt.qualifies_for_next_round,
            has_passed_qualification=user.has_passed_qualification,
            score=attempt.score,
            total_questions=attempt.total_questions,
            percentage_score=attempt.percentage_score,
            minimum_score_percentage=threshold,
            minimum_required=required,
            last_qualification_attempt_at=user.last_qualification_attempt_at,
            message=message,
        )

    # ── Operator actions ─────────────────────────────────────────────────

    def disqualify(self, user_id: uuid.UUID) -> DisqualificationRead:
        """Bar the user from starting attempts.  Completed attempts are kept."""
        now = self._clock()
        with self._transaction():
            user = self._get_user(user_id)
            if not user.is_disqualified:
                user.is_disqualified = True
                user.disqualified_at = now
                logger.info("Disqualified user %s", user.id)
            self.db.flush()
            return DisqualificationRead(
                user_id=user.id,
                is_disqualified=user.is_disqualified,
                disqualified_at=user.disqualified_at,
            )

    def reinstate(self, user_id: uuid.UUID) -> DisqualificationRead:
        with self._transaction():
            user = self._get_user(user_id)
            if user.is_disqualified:
                user.is_disqualified = False
                user.disqualified_at = None
                logger.info("Reinstated user %s", user.id)
            self.db.flush()
            return DisqualificationRead(
                user_id=user.id, is_disqualified=False, disqualified_at=None
            )

    def reset_attempt(self, attempt_id: uuid.UUID) -> None:
        """Delete an attempt and its progress so the user can start over."""
        with self._transaction():
            attempt_store.delete_attempt(self.db, attempt_id)
        logger.info("Reset attempt %s", attempt_id)
