"""Match model (team-scoped)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Match(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "matches"

    team_id: uuid.UUID = Field(
        foreign_key="teams.id", nullable=False, index=True, ondelete="CASCADE"
    )
    opponent_name: str = Field(nullable=False)
    match_date: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    location: str = Field(nullable=False)
    is_home: bool = Field(default=True, nullable=False)
    status: str = Field(default="scheduled", nullable=False)  # scheduled | completed | cancelled
    goals_scored: Optional[int] = None
    goals_conceded: Optional[int] = None
    notes: Optional[str] = None
