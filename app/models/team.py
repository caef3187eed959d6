from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class TeamRole(str, Enum):
    """Role of a user within a team."""

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class Team(BaseModel):
    """Team model; documents belong to teams and members may read them."""

    id: str = Field(..., description="Unique team identifier")
    name: str = Field(..., description="Team display name")
    plan: str = Field(default="free", description="Billing plan label")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Role of the requesting user, when loaded through a membership
    role: Optional[TeamRole] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_datetime(self, value: datetime) -> Optional[str]:
        """Serialize datetime fields to ISO format."""
        return value.isoformat() if value else None
