"""
Football Team Service
Squad building business logic with ownership checks
"""

import math
import uuid
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from aimarker.models.schemas import (
    MAX_SQUAD_SIZE, PlayerSchema, PlayerUpdateSchema, TeamCreateSchema, TeamUpdateSchema
)
from aimarker.models.team import DEFAULT_STATISTICS, bench_players, calculate_team_rating, starting_xi
from aimarker.utils.database import TeamDatabase, TEAM_SORT_COLUMNS
from aimarker.utils.errors import NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


def new_player_id() -> str:
    return uuid.uuid4().hex


def _player_dict(player: PlayerSchema) -> Dict[str, Any]:
    data = player.model_dump(exclude_none=True)
    data['id'] = data.get('id') or new_player_id()
    return data


def with_lineup(team: Dict[str, Any]) -> Dict[str, Any]:
    """Team record plus its starting XI and bench"""
    return {**team, 'starting_xi': starting_xi(team), 'bench': bench_players(team)}


def paginate(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        'current': page,
        'pages': math.ceil(total / limit) if limit else 0,
        'total': total
    }


class FootballService:
    """Football team service"""

    @staticmethod
    async def create_team(user_id: str, team_data: TeamCreateSchema) -> Dict[str, Any]:
        players = [_player_dict(player) for player in team_data.players]
        statistics = dict(DEFAULT_STATISTICS)
        if team_data.statistics is not None:
            statistics.update(team_data.statistics.model_dump())

        team = await TeamDatabase.create_team({
            'name': team_data.name,
            'formation': team_data.formation,
            'players': players,
            'created_by': user_id,
            'is_public': team_data.is_public,
            'description': team_data.description,
            'league': team_data.league,
            'season': team_data.season,
            'team_rating': calculate_team_rating(players),
            'tactics': team_data.tactics.model_dump(exclude_none=True) if team_data.tactics else {},
            'statistics': statistics
        })

        logger.info(f"Team {team['id']} created by user {user_id}")
        return team

    @staticmethod
    async def list_user_teams(
        user_id: str,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        order: str = "desc"
    ) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        """
        Page through the user's own teams

        Returns:
            tuple: (teams, pagination)
        """
        if sort_by not in TEAM_SORT_COLUMNS:
            sort_by = "created_at"

        teams = await TeamDatabase.list_user_teams(
            user_id,
            limit=limit,
            offset=(page - 1) * limit,
            sort_by=sort_by,
            descending=order.lower() != "asc"
        )
        total = await TeamDatabase.count_user_teams(user_id)
        return teams, paginate(total, page, limit)

    @staticmethod
    async def list_public_teams(page: int = 1, limit: int = 10) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        teams = await TeamDatabase.list_public_teams(limit=limit, offset=(page - 1) * limit)
        total = await TeamDatabase.count_public_teams()
        return teams, paginate(total, page, limit)

    @staticmethod
    async def get_team(team_id: str, user_id: str) -> Dict[str, Any]:
        """
        Fetch a team the user may view

        Raises:
            NotFoundError: unknown or malformed team id
            PermissionDeniedError: private team of another user
        """
        team = await TeamDatabase.get_team_by_id(team_id)
        if not team:
            raise NotFoundError("Team not found")
        if team['created_by'] != str(user_id) and not team.get('is_public'):
            raise PermissionDeniedError("Access denied")
        return team

    @staticmethod
    async def get_owned_team(team_id: str, user_id: str) -> Dict[str, Any]:
        """Fetch a team for modification; only the owner may modify it"""
        team = await TeamDatabase.get_team_by_id(team_id)
        if not team:
            raise NotFoundError("Team not found")
        if team['created_by'] != str(user_id):
            raise PermissionDeniedError("Access denied")
        return team

    @staticmethod
    async def _save(team: Dict[str, Any], update_data: Dict[str, Any]) -> Dict[str, Any]:
        players = update_data.get('players', team.get('players') or [])
        update_data['team_rating'] = calculate_team_rating(players, team.get('team_rating') or 0)

        updated = await TeamDatabase.update_team(team['id'], update_data)
        if not updated:
            raise NotFoundError("Team not found")
        return updated

    @staticmethod
    async def update_team(team_id: str, user_id: str, team_data: TeamUpdateSchema) -> Dict[str, Any]:
        team = await FootballService.get_owned_team(team_id, user_id)

        update_data: Dict[str, Any] = {}
        for field in team_data.model_fields_set:
            value = getattr(team_data, field)
            if field == 'players':
                update_data['players'] = [_player_dict(player) for player in value or []]
            elif field == 'tactics':
                update_data['tactics'] = value.model_dump(exclude_none=True) if value else {}
            elif field == 'statistics':
                statistics = {**DEFAULT_STATISTICS, **(team.get('statistics') or {})}
                if value is not None:
                    statistics.update(value.model_dump(exclude_unset=True))
                update_data['statistics'] = statistics
            elif value is not None or field in ('description', 'league', 'season'):
                update_data[field] = value

        team = await FootballService._save(team, update_data)
        logger.info(f"Team {team_id} updated by user {user_id}")
        return team

    @staticmethod
    async def delete_team(team_id: str, user_id: str) -> None:
        await FootballService.get_owned_team(team_id, user_id)
        if not await TeamDatabase.delete_team(team_id):
            raise NotFoundError("Team not found")
        logger.info(f"Team {team_id} deleted by user {user_id}")

    @staticmethod
    async def _edit_squad(
        team_id: str,
        user_id: str,
        edit: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]
    ) -> Dict[str, Any]:
        """Apply edit to the squad as stored under the row lock, then recompute the rating"""
        await FootballService.get_owned_team(team_id, user_id)

        def apply(team: Dict[str, Any]) -> Dict[str, Any]:
            players = edit(list(team.get('players') or []))
            return {
                'players': players,
                'team_rating': calculate_team_rating(players, team.get('team_rating') or 0)
            }

        updated = await TeamDatabase.edit_team(team_id, apply)
        if not updated:
            raise NotFoundError("Team not found")
        return updated

    @staticmethod
    async def add_player(team_id: str, user_id: str, player: PlayerSchema) -> Dict[str, Any]:
        """
        Append a player to the squad

        Raises:
            ValidationError: squad already holds the maximum number of players
        """
        new_player = _player_dict(player)

        def append(players: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
            if len(players) >= MAX_SQUAD_SIZE:
                raise ValidationError(f"Team cannot have more than {MAX_SQUAD_SIZE} players")
            return players + [new_player]

        return await FootballService._edit_squad(team_id, user_id, append)

    @staticmethod
    def _find_player(players: List[Dict[str, Any]], player_id: str) -> int:
        for index, player in enumerate(players):
            if str(player.get('id')) == player_id:
                return index
        raise NotFoundError("Player not found")

    @staticmethod
    async def update_player(
        team_id: str,
        user_id: str,
        player_id: str,
        player_data: PlayerUpdateSchema
    ) -> Dict[str, Any]:
        changes = player_data.model_dump(exclude_unset=True, exclude_none=True)

        def apply_changes(players: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
            index = FootballService._find_player(players, player_id)
            players[index] = {**players[index], **changes, 'id': players[index]['id']}
            return players

        return await FootballService._edit_squad(team_id, user_id, apply_changes)

    @staticmethod
    async def remove_player(team_id: str, user_id: str, player_id: str) -> Optional[Dict[str, Any]]:
        def remove(players: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
            del players[FootballService._find_player(players, player_id)]
            return players

        return await FootballService._edit_squad(team_id, user_id, remove)
