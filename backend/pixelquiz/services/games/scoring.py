import logging
from typing import Dict, List, Mapping

from pixelquiz.connection import Connection

logger = logging.getLogger(__name__)

BASE_POINTS_PER_ROUND = 100


class Player:
    """Score and streak for one participant, bound to its connection."""

    def __init__(self, name: str, connection: Connection):
        self.name = name
        self.connection = connection
        self.connected = not connection.closed
        self.score = 0
        self.streak = 0
        connection.on('close', self._on_close)

    def __repr__(self):
        return f'<Player {self.name} score={self.score} streak={self.streak}>'

    def _on_close(self) -> None:
        if not self.connected:
            return
        self.connected = False
        logger.info(f"[player-gone] name={self.name} sid={self.connection.sid}")

    def send(self, payload) -> None:
        self.connection.send(payload)

    def update(self, correct: bool) -> None:
        """Apply one answer: +points and streak on a hit, streak reset on a miss."""
        if correct:
            self.score += BASE_POINTS_PER_ROUND
            self.streak += 1
        else:
            self.streak = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            'name': self.name,
            'score': self.score,
            'streak': self.streak,
        }


def leaderboard(players: Mapping[str, Player]) -> List[Dict[str, object]]:
    """Rank players by score, then streak (both descending), then name.

    Computed fresh on every call; callers pass the live player mapping.
    """
    entries = [
        {'name': name, 'score': player.score, 'streak': player.streak}
        for name, player in players.items()
    ]
    entries.sort(key=lambda e: (-e['score'], -e['streak'], e['name']))
    return entries
