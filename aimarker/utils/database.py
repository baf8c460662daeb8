"""
Database Connection Utilities
PostgreSQL pool plus user, football team and activity log persistence
"""

import asyncpg
import json
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
from contextlib import asynccontextmanager

from aimarker.config import settings

logger = logging.getLogger(__name__)

# Database connection pool
_pool: Optional[asyncpg.Pool] = None

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY,
        username VARCHAR(30) NOT NULL UNIQUE,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role VARCHAR(10) NOT NULL DEFAULT 'user',
        last_login TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS football_teams (
        id UUID PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        formation VARCHAR(10) NOT NULL,
        players JSONB NOT NULL DEFAULT '[]'::jsonb,
        created_by UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        is_public BOOLEAN NOT NULL DEFAULT FALSE,
        description VARCHAR(500),
        league VARCHAR(100),
        season VARCHAR(20),
        team_rating INTEGER NOT NULL DEFAULT 0,
        tactics JSONB,
        statistics JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_teams_owner ON football_teams (created_by, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_teams_public ON football_teams (is_public, team_rating DESC)",
    """
    CREATE TABLE IF NOT EXISTS activity_logs (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        action VARCHAR(32) NOT NULL,
        details JSONB NOT NULL DEFAULT '{}'::jsonb,
        ip_address VARCHAR(64),
        user_agent VARCHAR(500),
        success BOOLEAN NOT NULL DEFAULT TRUE,
        timestamp TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_activity_user ON activity_logs (user_id, timestamp DESC)",
    "CREATE INDEX IF NOT EXISTS idx_activity_action ON activity_logs (action, timestamp DESC)",
]

# Columns a team listing may be sorted by
TEAM_SORT_COLUMNS = {"created_at", "updated_at", "name", "team_rating"}


async def _init_connection(conn: asyncpg.Connection):
    """Decode JSONB columns into Python objects"""
    await conn.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog'
    )


async def init_database():
    """Initialize database connection pool and schema"""
    global _pool

    try:
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=60,
            init=_init_connection
        )
        logger.info("Database connection pool initialized successfully")

        async with _pool.acquire() as conn:
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
            logger.info("Database schema verified")

    except Exception as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise


async def get_database_pool() -> asyncpg.Pool:
    """Get database connection pool"""
    global _pool
    if _pool is None:
        await init_database()
    return _pool


@asynccontextmanager
async def get_database_connection():
    """Get database connection from pool"""
    pool = await get_database_pool()
    async with pool.acquire() as connection:
        yield connection


async def close_database():
    """Close database connection pool"""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")


class DatabaseManager:
    """Thin query helpers over the shared pool"""

    async def execute_query(self, query: str, *args):
        """Execute a query and return results"""
        async with get_database_connection() as conn:
            return await conn.fetch(query, *args)

    async def execute_single(self, query: str, *args):
        """Execute a query and return single result"""
        async with get_database_connection() as conn:
            return await conn.fetchrow(query, *args)

    async def execute_value(self, query: str, *args):
        """Execute a query and return single value"""
        async with get_database_connection() as conn:
            return await conn.fetchval(query, *args)

    async def execute_command(self, query: str, *args):
        """Execute a command (INSERT, UPDATE, DELETE)"""
        async with get_database_connection() as conn:
            return await conn.execute(query, *args)


# Global database manager instance
db_manager = DatabaseManager()


def parse_uuid(value: str) -> Optional[uuid.UUID]:
    """Parse an id from a URL; None when it is not a UUID"""
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


def _record_to_dict(record, id_fields: Tuple[str, ...] = ("id",)) -> Dict[str, Any]:
    data = dict(record)
    for field in id_fields:
        if data.get(field) is not None:
            data[field] = str(data[field])
    return data


class UserDatabase:
    """Database operations for user accounts"""

    USER_COLUMNS = "id, username, email, password_hash, role, last_login, created_at, updated_at"

    @staticmethod
    async def create_user(user_data: dict) -> dict:
        """
        Create new user

        Args:
            user_data: username, email, password_hash and optional role

        Returns:
            dict: Created user

        Raises:
            asyncpg.UniqueViolationError: username or email already taken
        """
        query = f"""
        INSERT INTO users (id, username, email, password_hash, role, last_login, created_at, updated_at)
        VALUES ($1, $2, $3, $4, $5, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
        RETURNING {UserDatabase.USER_COLUMNS}
        """

        result = await db_manager.execute_single(
            query,
            uuid.uuid4(),
            user_data['username'],
            user_data['email'],
            user_data['password_hash'],
            user_data.get('role', 'user')
        )

        user = _record_to_dict(result)
        logger.info(f"User created with ID: {user['id']}")
        return user

    @staticmethod
    async def get_user_by_email(email: str) -> Optional[dict]:
        query = f"SELECT {UserDatabase.USER_COLUMNS} FROM users WHERE email = $1"
        result = await db_manager.execute_single(query, email.lower())
        return _record_to_dict(result) if result else None

    @staticmethod
    async def get_user_by_username(username: str) -> Optional[dict]:
        query = f"SELECT {UserDatabase.USER_COLUMNS} FROM users WHERE username = $1"
        result = await db_manager.execute_single(query, username)
        return _record_to_dict(result) if result else None

    @staticmethod
    async def get_user_by_id(user_id: str) -> Optional[dict]:
        user_uuid = parse_uuid(user_id)
        if user_uuid is None:
            return None
        query = f"SELECT {UserDatabase.USER_COLUMNS} FROM users WHERE id = $1"
        result = await db_manager.execute_single(query, user_uuid)
        return _record_to_dict(result) if result else None

    @staticmethod
    async def find_conflicting_user(email: str, username: str) -> Optional[dict]:
        """Find a user that already owns this email or username"""
        query = f"""
        SELECT {UserDatabase.USER_COLUMNS}
        FROM users
        WHERE email = $1 OR username = $2
        LIMIT 1
        """
        result = await db_manager.execute_single(query, email.lower(), username)
        return _record_to_dict(result) if result else None

    @staticmethod
    async def update_last_login(user_id: str) -> bool:
        query = """
        UPDATE users
        SET last_login = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
        WHERE id = $1
        """
        result = await db_manager.execute_command(query, parse_uuid(user_id))
        return result == "UPDATE 1"

    @staticmethod
    async def update_password(user_id: str, password_hash: str) -> bool:
        query = """
        UPDATE users
        SET password_hash = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        """
        result = await db_manager.execute_command(query, password_hash, parse_uuid(user_id))
        return result == "UPDATE 1"


class TeamDatabase:
    """Database operations for football teams"""

    TEAM_SELECT = """
    SELECT t.id, t.name, t.formation, t.players, t.created_by, u.username AS created_by_username,
           t.is_public, t.description, t.league, t.season, t.team_rating, t.tactics,
           t.statistics, t.created_at, t.updated_at
    FROM football_teams t
    JOIN users u ON u.id = t.created_by
    """

    @staticmethod
    def _to_team(record) -> dict:
        team = _record_to_dict(record, ("id", "created_by"))
        team['players'] = team.get('players') or []
        team['statistics'] = team.get('statistics') or {}
        return team

    @staticmethod
    async def create_team(team_data: dict) -> dict:
        team_id = uuid.uuid4()
        query = """
        INSERT INTO football_teams (id, name, formation, players, created_by, is_public,
                                    description, league, season, team_rating, tactics,
                                    statistics, created_at, updated_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12,
                CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
        """
        await db_manager.execute_command(
            query,
            team_id,
            team_data['name'],
            team_data['formation'],
            team_data.get('players', []),
            parse_uuid(team_data['created_by']),
            team_data.get('is_public', False),
            team_data.get('description'),
            team_data.get('league'),
            team_data.get('season'),
            team_data.get('team_rating', 0),
            team_data.get('tactics'),
            team_data.get('statistics', {})
        )
        logger.info(f"Football team created with ID: {team_id}")
        return await TeamDatabase.get_team_by_id(str(team_id))

    @staticmethod
    async def get_team_by_id(team_id: str) -> Optional[dict]:
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return None
        query = f"{TeamDatabase.TEAM_SELECT} WHERE t.id = $1"
        result = await db_manager.execute_single(query, team_uuid)
        return TeamDatabase._to_team(result) if result else None

    @staticmethod
    async def list_user_teams(
        user_id: str,
        limit: int,
        offset: int,
        sort_by: str = "created_at",
        descending: bool = True
    ) -> List[dict]:
        if sort_by not in TEAM_SORT_COLUMNS:
            sort_by = "created_at"
        direction = "DESC" if descending else "ASC"
        query = f"""
        {TeamDatabase.TEAM_SELECT}
        WHERE t.created_by = $1
        ORDER BY t.{sort_by} {direction}
        LIMIT $2 OFFSET $3
        """
        rows = await db_manager.execute_query(query, parse_uuid(user_id), limit, offset)
        return [TeamDatabase._to_team(row) for row in rows]

    @staticmethod
    async def count_user_teams(user_id: str) -> int:
        query = "SELECT COUNT(*) FROM football_teams WHERE created_by = $1"
        return await db_manager.execute_value(query, parse_uuid(user_id)) or 0

    @staticmethod
    async def list_public_teams(limit: int, offset: int) -> List[dict]:
        query = f"""
        {TeamDatabase.TEAM_SELECT}
        WHERE t.is_public = TRUE
        ORDER BY t.team_rating DESC, t.created_at DESC
        LIMIT $1 OFFSET $2
        """
        rows = await db_manager.execute_query(query, limit, offset)
        return [TeamDatabase._to_team(row) for row in rows]

    @staticmethod
    async def count_public_teams() -> int:
        query = "SELECT COUNT(*) FROM football_teams WHERE is_public = TRUE"
        return await db_manager.execute_value(query) or 0

    @staticmethod
    async def update_team(team_id: str, update_data: dict) -> Optional[dict]:
        """
        Update team columns

        Args:
            team_id: Team ID
            update_data: Column values to set

        Returns:
            dict: Updated team or None when it no longer exists
        """
        query, values = TeamDatabase._update_query(parse_uuid(team_id), update_data)
        if query is None:
            return await TeamDatabase.get_team_by_id(team_id)

        result = await db_manager.execute_command(query, *values)
        if result != "UPDATE 1":
            return None
        return await TeamDatabase.get_team_by_id(team_id)

    @staticmethod
    def _update_query(team_uuid: uuid.UUID, update_data: dict) -> Tuple[Optional[str], list]:
        set_clauses = []
        values = []
        param_count = 1

        for key, value in update_data.items():
            if key not in ['id', 'created_by', 'created_at', 'created_by_username']:
                set_clauses.append(f"{key} = ${param_count}")
                values.append(value)
                param_count += 1

        if not set_clauses:
            return None, values

        set_clauses.append("updated_at = CURRENT_TIMESTAMP")
        values.append(team_uuid)

        query = f"""
        UPDATE football_teams
        SET {', '.join(set_clauses)}
        WHERE id = ${param_count}
        """
        return query, values

    @staticmethod
    async def edit_team(team_id: str, edit: Callable[[dict], dict]) -> Optional[dict]:
        """
        Read-modify-write a team under a row lock

        Args:
            team_id: Team ID
            edit: Receives the locked team and returns the columns to set.
                Anything it raises rolls the transaction back.

        Returns:
            dict: Updated team or None when it does not exist
        """
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return None

        async with get_database_connection() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT id, created_by, players, team_rating FROM football_teams WHERE id = $1 FOR UPDATE",
                    team_uuid
                )
                if row is None:
                    return None

                query, values = TeamDatabase._update_query(team_uuid, edit(TeamDatabase._to_team(row)))
                if query is not None:
                    await conn.execute(query, *values)

        return await TeamDatabase.get_team_by_id(team_id)

    @staticmethod
    async def delete_team(team_id: str) -> bool:
        query = "DELETE FROM football_teams WHERE id = $1"
        result = await db_manager.execute_command(query, parse_uuid(team_id))
        return result == "DELETE 1"


class ActivityLogDatabase:
    """Database operations for the activity audit trail"""

    @staticmethod
    async def create_log(log_data: dict) -> str:
        log_id = uuid.uuid4()
        query = """
        INSERT INTO activity_logs (id, user_id, action, details, ip_address, user_agent, success, timestamp)
        VALUES ($1, $2, $3, $4, $5, $6, $7, CURRENT_TIMESTAMP)
        """
        await db_manager.execute_command(
            query,
            log_id,
            parse_uuid(log_data['user_id']),
            log_data['action'],
            log_data.get('details') or {},
            log_data.get('ip_address'),
            log_data.get('user_agent'),
            log_data.get('success', True)
        )
        return str(log_id)

    @staticmethod
    async def list_user_logs(user_id: str, limit: int = 50) -> List[dict]:
        query = """
        SELECT id, user_id, action, details, ip_address, user_agent, success, timestamp
        FROM activity_logs
        WHERE user_id = $1
        ORDER BY timestamp DESC
        LIMIT $2
        """
        rows = await db_manager.execute_query(query, parse_uuid(user_id), limit)
        return [_record_to_dict(row, ("id", "user_id")) for row in rows]
