"""
Football team helpers
Squad rating and line-up views over a team record
"""

from typing import List, Dict, Any

STARTING_XI_SIZE = 11

DEFAULT_STATISTICS = {
    'matches_played': 0,
    'wins': 0,
    'draws': 0,
    'losses': 0,
    'goals_for': 0,
    'goals_against': 0
}


def calculate_team_rating(players: List[Dict[str, Any]], current: int = 0) -> int:
    """Rounded mean of the players' overall ratings; unchanged for an empty squad"""
    if not players:
        return current
    total = sum(player['overall'] for player in players)
    # Half-up rounding, not banker's rounding
    return int(total / len(players) + 0.5)


def starting_xi(team: Dict[str, Any]) -> List[Dict[str, Any]]:
    return list(team.get('players') or [])[:STARTING_XI_SIZE]


def bench_players(team: Dict[str, Any]) -> List[Dict[str, Any]]:
    return list(team.get('players') or [])[STARTING_XI_SIZE:]
