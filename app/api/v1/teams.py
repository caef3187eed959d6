"""Team endpoints: list the caller's teams and create new ones."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.logging import get_api_logger
from app.core.simple_auth import SimpleSession, get_current_session
from app.models.schemas import TeamCreateRequest, TeamResponse
from app.services.team_service import team_service

logger = get_api_logger()

router = APIRouter()


@router.get(
    "/teams",
    response_model=List[TeamResponse],
    summary="List Teams",
    operation_id="listTeams",
)
async def list_teams(session: SimpleSession = Depends(get_current_session)):
    """List the teams the caller belongs to."""
    try:
        teams = await team_service.list_teams_for_user(session.user_id)
    except Exception as e:
        logger.error("Failed to list teams", user_id=session.user_id, error=str(e))
        raise

    return [TeamResponse.model_validate(team) for team in teams]


@router.post(
    "/teams",
    response_model=TeamResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Team",
    operation_id="createTeam",
)
async def create_team(
    body: TeamCreateRequest,
    session: SimpleSession = Depends(get_current_session),
):
    """Create a team with the caller as its admin."""
    try:
        team = await team_service.create_team(body.team, owner_id=session.user_id)
    except Exception as e:
        logger.error(
            "Failed to create team",
            team=body.team,
            user_id=session.user_id,
            error=str(e),
        )
        raise

    return TeamResponse.model_validate(team)


@router.api_route(
    "/teams",
    methods=["PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def teams_method_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
        headers={"Allow": "GET, POST"},
    )
