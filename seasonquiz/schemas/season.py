"""Season schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class SeasonKind(str, Enum):
    QUALIFICATION = "qualification"
    REGULAR = "regular"


class SeasonCreate(BaseModel):
    """Season definition supplied by the administrative collaborator."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    start_at: datetime
    end_at: datetime
    is_active: bool = False
    is_qualification_round: bool = False
    minimum_score_percentage: int | None = Field(default=None, ge=0, le=100)
    requires_qualification: bool = False

    @model_validator(mode="after")
    def _check_window(self) -> "SeasonCreate":
        if self.start_at >= self.end_at:
            raise ValueError("start_at must be before end_at")
        return self


class SeasonRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    start_at: datetime
    end_at: datetime
    is_active: bool
    is_qualification_round: bool
    minimum_score_percentage: int | None = None
    requires_qualification: bool

    model_config = {"from_attributes": True}


class SeasonStatsRead(SeasonRead):
    """Admin listing row with aggregate counters."""

    question_count: int = 0
    attempts_count: int = 0
    qualified_users_count: int = 0


class QualifiedUserRead(BaseModel):
    """A user whose completed attempt met the season threshold."""

    user_id: uuid.UUID
    email: str
    full_name: str
    score: int
    percentage_score: int
    completed_at: datetime | None = None
