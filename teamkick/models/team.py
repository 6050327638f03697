"""Team model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Team(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "teams"

    name: str = Field(nullable=False, index=True)
    logo: Optional[str] = None
    division: Optional[str] = None
    season_year: Optional[str] = None
    team_type: str = Field(default="11-a-side", nullable=False)
    category: str = Field(default="AMATEUR", nullable=False)
    join_code: str = Field(unique=True, index=True, nullable=False, max_length=6)
    owner_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL"
    )
    created_by_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL"
    )
