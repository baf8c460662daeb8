"""
Football Team Routes
Team CRUD and squad management for the signed-in user
"""

from fastapi import APIRouter, HTTPException, Query, Request, status
import logging

from aimarker.models.schemas import (
    ActivityAction, PlayerSchema, PlayerUpdateSchema, TeamCreateSchema, TeamUpdateSchema
)
from aimarker.services.activity_service import ActivityService
from aimarker.services.football_service import FootballService, with_lineup
from aimarker.utils.dependencies import CurrentUser
from aimarker.utils.errors import AIMarkerError, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}"
    )


@router.post("/teams", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_team(team_data: TeamCreateSchema, current_user: CurrentUser, request: Request):
    """Create a team owned by the current user"""
    try:
        team = await FootballService.create_team(current_user['id'], team_data)

        await ActivityService.log_activity(
            current_user['id'],
            ActivityAction.SAVE_TEAM,
            {'team_id': team['id'], 'team_name': team['name'], 'operation': 'create'},
            request
        )

        return {"success": True, "data": team, "message": "Team created successfully"}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("create team", e)


@router.get("/teams", response_model=dict)
async def list_teams(
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc")
):
    """List the current user's teams"""
    try:
        teams, pagination = await FootballService.list_user_teams(
            current_user['id'], page=page, limit=limit, sort_by=sort_by, order=order
        )
        return {"success": True, "data": teams, "pagination": pagination}

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("fetch teams", e)


@router.get("/teams/public", response_model=dict)
async def list_public_teams(
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100)
):
    """Public teams, best rated first"""
    try:
        teams, pagination = await FootballService.list_public_teams(page=page, limit=limit)
        return {"success": True, "data": teams, "pagination": pagination}

    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("fetch public teams", e)


@router.get("/teams/{team_id}", response_model=dict)
async def get_team(team_id: str, current_user: CurrentUser):
    try:
        team = await FootballService.get_team(team_id, current_user['id'])
        return {"success": True, "data": with_lineup(team)}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("fetch team", e)


@router.put("/teams/{team_id}", response_model=dict)
async def update_team(team_id: str, team_data: TeamUpdateSchema, current_user: CurrentUser, request: Request):
    try:
        team = await FootballService.update_team(team_id, current_user['id'], team_data)

        await ActivityService.log_activity(
            current_user['id'],
            ActivityAction.SAVE_TEAM,
            {'team_id': team['id'], 'team_name': team['name'], 'operation': 'update'},
            request
        )

        return {"success": True, "data": team, "message": "Team updated successfully"}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("update team", e)


@router.delete("/teams/{team_id}", response_model=dict)
async def delete_team(team_id: str, current_user: CurrentUser):
    try:
        await FootballService.delete_team(team_id, current_user['id'])
        return {"success": True, "message": "Team deleted successfully"}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("delete team", e)


@router.post("/teams/{team_id}/players", response_model=dict, status_code=status.HTTP_201_CREATED)
async def add_player(team_id: str, player: PlayerSchema, current_user: CurrentUser):
    """Add a player to the squad"""
    try:
        team = await FootballService.add_player(team_id, current_user['id'], player)
        return {"success": True, "data": team, "message": "Player added successfully"}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("add player", e)


@router.put("/teams/{team_id}/players/{player_id}", response_model=dict)
async def update_player(
    team_id: str,
    player_id: str,
    player_data: PlayerUpdateSchema,
    current_user: CurrentUser
):
    try:
        team = await FootballService.update_player(team_id, current_user['id'], player_id, player_data)
        return {"success": True, "data": team, "message": "Player updated successfully"}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("update player", e)


@router.delete("/teams/{team_id}/players/{player_id}", response_model=dict)
async def remove_player(team_id: str, player_id: str, current_user: CurrentUser):
    try:
        team = await FootballService.remove_player(team_id, current_user['id'], player_id)
        return {"success": True, "data": team, "message": "Player removed successfully"}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("remove player", e)
