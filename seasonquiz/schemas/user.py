"""User schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel


class UserRead(BaseModel):
    """Identity as seen by this service."""

    id: uuid.UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    is_disqualified: bool
    has_passed_qualification: bool
    last_qualification_attempt_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DisqualificationRead(BaseModel):
    """Result of a disqualify / reinstate call."""

    user_id: uuid.UUID
    is_disqualified: bool
    disqualified_at: datetime | None = None

    model_config = {"from_attributes": True}
