"""Game domain services: players, rounds, sessions and the game directory.

This package holds the round/session state machine. It talks to sockets
only through ``pixelquiz.connection.Connection`` so it can be driven by the
Socket.IO handlers or directly from tests.
"""

from .registry import GameRegistry
from .round import Round
from .scoring import BASE_POINTS_PER_ROUND, Player, leaderboard
from .session import Game, GameOptions

__all__ = [
    'BASE_POINTS_PER_ROUND',
    'Game',
    'GameOptions',
    'GameRegistry',
    'Player',
    'Round',
    'leaderboard',
]
