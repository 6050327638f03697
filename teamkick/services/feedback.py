"""Feedback service: submission by any user, triage by superusers."""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from teamkick.core.errors import NotFoundError
from teamkick.models.feedback import Feedback
from teamkick.models.user import User

log = structlog.get_logger()


async def create_feedback(
    user: User,
    feedback_type: str,
    message: str,
    session: AsyncSession,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
) -> Feedback:
    feedback = Feedback(
        user_id=user.id,
        type=feedback_type,
        subject=f"{feedback_type.capitalize()} feedback",
        message=message,
        name=name or user.full_name,
        email=email or user.email,
    )
    session.add(feedback)
    await session.flush()
    log.info("feedback.created", feedback_id=str(feedback.id), type=feedback_type)
    return feedback


async def list_feedback(session: AsyncSession, status: Optional[str] = None) -> list[Feedback]:
    """Newest first, optionally filtered by status."""
    query = select(Feedback).order_by(Feedback.created_at.desc())
    if status is not None:
        query = query.where(Feedback.status == status)
    result = await session.execute(query)
    return list(result.scalars().all())


async def set_feedback_status(
    feedback_id: uuid.UUID, status: str, session: AsyncSession
) -> Feedback:
    feedback = await session.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("FEEDBACK_NOT_FOUND", "Feedback not found")
    previous = feedback.status
    feedback.status = status
    session.add(feedback)
    await session.flush()
    log.info(
        "feedback.status_changed",
        feedback_id=str(feedback.id),
        old_status=previous,
        new_status=status,
    )
    return feedback
