"""Team schemas for API requests and responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.team import TeamRole


class TeamCreateRequest(BaseModel):
    """Body of `POST /teams`."""

    team: str = Field(..., min_length=1, max_length=255, examples=["Acme Legal"])

    @field_validator("team")
    @classmethod
    def validate_team(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Team name cannot be empty")
        return v


class TeamResponse(BaseModel):
    id: str
    name: str
    plan: str
    role: Optional[TeamRole] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TeamList(BaseModel):
    teams: List[TeamResponse]
