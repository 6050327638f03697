"""
API v1 Router

Team-scoped endpoints are prefixed with /teams/{team_id}.
"""

from fastapi import APIRouter

from . import admin, auth, feedback, matches, members, teams

router = APIRouter()

router.include_router(auth.router, tags=["Authentication"])
router.include_router(teams.router, tags=["Teams"])
router.include_router(members.router, prefix="/teams/{team_id}/members", tags=["Members"])
router.include_router(matches.router, prefix="/teams/{team_id}/matches", tags=["Matches"])
router.include_router(feedback.router, tags=["Feedback"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
