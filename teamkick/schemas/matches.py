"""Match schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, UUID4, field_validator


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MatchCreateRequest(BaseModel):
    opponent_name: str = Field(min_length=1, max_length=100)
    match_date: datetime
    location: str = Field(min_length=1, max_length=200)
    is_home: bool = True
    status: MatchStatus = MatchStatus.SCHEDULED
    goals_scored: Optional[int] = Field(default=None, ge=0)
    goals_conceded: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)


class MatchUpdateRequest(BaseModel):
    opponent_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    match_date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, min_length=1, max_length=200)
    is_home: Optional[bool] = None
    status: Optional[MatchStatus] = None
    goals_scored: Optional[int] = Field(default=None, ge=0)
    goals_conceded: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("opponent_name", "match_date", "location", "is_home", "status")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    team_id: UUID4
    opponent_name: str
    match_date: datetime
    location: str
    is_home: bool
    status: MatchStatus
    goals_scored: Optional[int] = None
    goals_conceded: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime


class MatchListResponse(BaseModel):
    data: List[MatchResponse]
