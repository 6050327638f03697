"""Team, join code and membership schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, UUID4, field_validator

from teamkick.core.roles import TeamRole


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    logo: Optional[str] = Field(default=None, max_length=500)
    division: Optional[str] = Field(default=None, max_length=100)
    season_year: Optional[str] = Field(default=None, max_length=20)
    team_type: str = Field(default="11-a-side", max_length=50)
    category: str = Field(default="AMATEUR", max_length=50)


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    logo: Optional[str] = Field(default=None, max_length=500)
    division: Optional[str] = Field(default=None, max_length=100)
    season_year: Optional[str] = Field(default=None, max_length=20)
    team_type: Optional[str] = Field(default=None, max_length=50)
    category: Optional[str] = Field(default=None, max_length=50)

    @field_validator("name", "team_type", "category")
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared.
        if value is None:
            raise ValueError("may not be null")
        return value


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    name: str
    logo: Optional[str] = None
    division: Optional[str] = None
    season_year: Optional[str] = None
    team_type: str
    category: str
    owner_id: Optional[UUID4] = None
    # Only filled in for team admins.
    join_code: Optional[str] = None
    created_at: datetime


class MyTeamResponse(BaseModel):
    team: TeamResponse
    role: TeamRole


class MyTeamListResponse(BaseModel):
    data: List[MyTeamResponse]


class TeamListResponse(BaseModel):
    data: List[TeamResponse]


# ---------------------------------------------------------------------------
# Join codes
# ---------------------------------------------------------------------------

class PublicTeam(BaseModel):
    """The only team fields an unauthenticated caller may see."""
    id: UUID4
    name: str
    logo: Optional[str] = None


class JoinCodeValidationResponse(BaseModel):
    valid: bool
    team: Optional[PublicTeam] = None
    message: Optional[str] = None


class JoinCodeResponse(BaseModel):
    join_code: str
    message: str


class JoinTeamRequest(BaseModel):
    code: str = Field(min_length=1, max_length=32)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberAddRequest(BaseModel):
    user_id: UUID4
    role: TeamRole = TeamRole.PLAYER
    full_name: Optional[str] = Field(default=None, max_length=200)


class MemberUpdateRequest(BaseModel):
    role: TeamRole


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: UUID4
    user_id: UUID4
    role: TeamRole
    full_name: Optional[str] = None
    joined_at: datetime


class MemberListResponse(BaseModel):
    data: List[MemberResponse]
