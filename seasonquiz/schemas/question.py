"""Question schemas.

``QuestionRead`` is the client-facing view and deliberately has no
``correct_answer`` field.
"""

import uuid

from pydantic import BaseModel, Field, model_validator


class QuestionCreate(BaseModel):
    """Question definition supplied by the administrative collaborator."""

    text: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_answer: str
    category: str = "General"
    difficulty: str = "medium"
    time_limit_seconds: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_options(self) -> "QuestionCreate":
        if len(set(self.options)) != len(self.options):
            raise ValueError("options must be unique")
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self


class QuestionRead(BaseModel):
    """A question as served to a quiz taker."""

    id: uuid.UUID
    text: str
    options: list[str]
    category: str
    difficulty: str
    time_limit_seconds: int

    model_config = {"from_attributes": True}
