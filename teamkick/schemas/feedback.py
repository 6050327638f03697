"""Feedback schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, UUID4


class FeedbackType(str, Enum):
    BUG = "bug"
    SUGGESTION = "suggestion"
    IMPROVEMENT = "improvement"
    OTHER = "other"


class FeedbackStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


class FeedbackCreateRequest(BaseModel):
    type: FeedbackType
    message: str = Field(min_length=1, max_length=5000)
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None


class FeedbackStatusUpdateRequest(BaseModel):
    status: FeedbackStatus


class FeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    user_id: Optional[UUID4] = None
    name: Optional[str] = None
    email: Optional[str] = None
    type: FeedbackType
    subject: str
    message: str
    status: FeedbackStatus
    created_at: datetime
    updated_at: datetime


class FeedbackListResponse(BaseModel):
    data: List[FeedbackResponse]
