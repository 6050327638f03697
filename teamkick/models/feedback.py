"""User feedback, triaged by superusers."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Feedback(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "feedback"

    user_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="users.id", index=True, ondelete="SET NULL"
    )
    name: Optional[str] = None
    email: Optional[str] = None
    type: str = Field(nullable=False)  # bug | suggestion | improvement | other
    subject: str = Field(nullable=False)
    message: str = Field(nullable=False)
    status: str = Field(default="pending", nullable=False, index=True)  # pending | reviewed | resolved
