"""
Feedback submission. Triage lives under /api/admin/feedback.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.auth import require_principal
from teamkick.core.database import get_session
from teamkick.core.sessions import Principal
from teamkick.schemas.feedback import FeedbackCreateRequest, FeedbackResponse
from teamkick.services import feedback as feedback_service

router = APIRouter()


@router.post("/feedback", response_model=FeedbackResponse, status_code=201)
async def submit_feedback(
    body: FeedbackCreateRequest,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    return await feedback_service.create_feedback(
        principal.user,
        body.type.value,
        body.message,
        session,
        name=body.name,
        email=body.email,
    )
