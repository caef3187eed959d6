from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select

from app.core.db_client import db
from app.core.logging import get_service_logger
from app.models.db import TeamModel, UserTeamModel
from app.models.team import Team, TeamRole

logger = get_service_logger("team")


class TeamService:
    """Service for teams and team membership."""

    def __init__(self):
        self.logger = logger

    def _model_to_pydantic(
        self, model: TeamModel, role: Optional[TeamRole] = None
    ) -> Team:
        """Convert SQLAlchemy model to Pydantic model."""
        return Team(
            id=model.id,
            name=model.name,
            plan=model.plan,
            created_at=model.created_at,
            role=role,
        )

    async def list_teams_for_user(self, user_id: str) -> List[Team]:
        """
        List the teams a user belongs to, with the user's role in each.

        Args:
            user_id: Member to look up

        Returns:
            Teams ordered by creation time
        """
        async with db.session() as session:
            stmt = (
                select(TeamModel, UserTeamModel.role)
                .join(UserTeamModel, UserTeamModel.team_id == TeamModel.id)
                .where(UserTeamModel.user_id == user_id)
                .order_by(TeamModel.created_at)
            )
            result = await session.execute(stmt)
            teams = [self._model_to_pydantic(team, role) for team, role in result.all()]

        self.logger.debug("Listed teams", user_id=user_id, count=len(teams))
        return teams

    async def create_team(self, name: str, owner_id: str) -> Team:
        """
        Create a team with the given user as its admin.

        Args:
            name: Team display name
            owner_id: User who becomes the team's ADMIN

        Returns:
            The created team
        """
        async with db.session() as session:
            team_model = TeamModel(name=name, created_at=datetime.now(timezone.utc))
            session.add(team_model)
            await session.flush()

            session.add(
                UserTeamModel(
                    team_id=team_model.id, user_id=owner_id, role=TeamRole.ADMIN
                )
            )
            await session.flush()
            team = self._model_to_pydantic(team_model, TeamRole.ADMIN)

        self.logger.info("Team created", team_id=team.id, owner_id=owner_id)
        return team

    async def add_member(
        self, team_id: str, user_id: str, role: TeamRole = TeamRole.MEMBER
    ) -> None:
        """Add a user to a team."""
        async with db.session() as session:
            session.add(UserTeamModel(team_id=team_id, user_id=user_id, role=role))

        self.logger.info("Team member added", team_id=team_id, user_id=user_id, role=role.value)


# Global service instance
team_service = TeamService()
