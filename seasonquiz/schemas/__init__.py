"""Pydantic schemas: re‑exported for convenience."""

from seasonquiz.schemas.common import ErrorResponse, SuccessResponse  # noqa: F401
from seasonquiz.schemas.user import DisqualificationRead, UserRead  # noqa: F401
from seasonquiz.schemas.season import (  # noqa: F401
    QualifiedUserRead,
    SeasonCreate,
    SeasonKind,
    SeasonRead,
    SeasonStatsRead,
)
from seasonquiz.schemas.question import QuestionCreate, QuestionRead  # noqa: F401
from seasonquiz.schemas.attempt import (  # noqa: F401
    AnswerProgressRead,
    AttemptCompletedRead,
    AttemptStartRead,
    AttemptStartRequest,
    AttemptSummaryRead,
    BatchResultRead,
    StartStatus,
    Submission,
    SubmissionRequest,
)
from seasonquiz.schemas.progress import (  # noqa: F401
    ProgressEntryRead,
    ProgressRead,
    QualificationStatusRead,
)
