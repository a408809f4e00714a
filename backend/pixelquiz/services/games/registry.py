import logging
import random
import threading
from typing import Any, Callable, Dict, List, Optional

from pixelquiz.connection import Connection
from pixelquiz.protocol import (
    Actions,
    GameError,
    GameIdExhausted,
    JoinRejected,
    PhaseError,
    ProtocolError,
    error_frame,
    parse_action,
)
from .session import Game, GameOptions

logger = logging.getLogger(__name__)


def _spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, daemon=True).start()


class GameRegistry:
    """Directory of joinable games and the entry point for new connections.

    Games are listed here only while they are in the lobby; starting a game
    removes it, so its id may be handed out again afterwards.
    """

    ALPHANUM_CHARSET = 'abcdefghijklmnopqrstuvwxyz123456789'

    def __init__(
        self,
        picker_factory: Callable[[int], Any],
        sprites,
        defaults: Optional[GameOptions] = None,
        charset: str = ALPHANUM_CHARSET,
        id_len: int = 6,
        tries: Optional[int] = None,
        spawn: Callable[[Callable[[], None]], Any] = _spawn_thread,
        lock=None,
        rng: Optional[random.Random] = None,
    ):
        if not charset:
            raise ValueError('charset must not be empty')
        self.picker_factory = picker_factory
        self.sprites = sprites
        self.defaults = defaults or GameOptions()
        self.charset = charset
        self.id_len = max(1, int(id_len))
        # None (or 0) means keep trying until a free id turns up
        self.tries = max(1, int(tries)) if tries else None
        self.spawn = spawn
        self.lock = lock if lock is not None else threading.RLock()
        self.rng = rng or random.Random()
        self.games: Dict[str, Game] = {}

    def get_game(self, game_id: str) -> Optional[Game]:
        return self.games.get(game_id)

    def discard(self, game: Game) -> None:
        # ids are reused once a game starts; only drop this exact game
        if self.games.get(game.id) is game:
            del self.games[game.id]
            logger.info(f"[registry-discard] game={game.id} open={len(self.games)}")

    def joinable(self) -> List[Dict[str, Any]]:
        with self.lock:
            return [game.summary() for game in self.games.values()]

    def gen_game_id(self) -> str:
        attempt = 0
        while self.tries is None or attempt < self.tries:
            attempt += 1
            game_id = ''.join(self.rng.choice(self.charset) for _ in range(self.id_len))
            if game_id not in self.games:
                return game_id
        logger.warning(f"[registry-exhausted] tries={self.tries} open={len(self.games)}")
        raise GameIdExhausted('Failed to generate game id')

    def new_game(self, host_name: str, conn: Connection, overrides=None) -> Game:
        options = self.defaults.merged(overrides)
        game_id = self.gen_game_id()
        game = Game(self, game_id, host_name, conn, options)
        self.games[game_id] = game
        return game

    def accept(self, conn: Connection) -> None:
        """Attach the HOST/JOIN listener to a connection that has no game."""
        def listener(payload):
            self._on_lobby_message(conn, listener, payload)
        conn.on('message', listener)

    def _on_lobby_message(self, conn: Connection, listener, payload) -> None:
        try:
            action = parse_action(payload)
            if action is None:
                raise ProtocolError('No action specified')
            if action == Actions.HOST:
                self.new_game(_player_name(payload), conn, payload.get('options'))
            elif action == Actions.JOIN:
                name = _player_name(payload)
                game_id = str(payload.get('id') or '').strip()
                game = self.get_game(game_id)
                if game is None:
                    raise JoinRejected(f"Game '{game_id}' not found")
                game.add_player(name, conn)
            else:
                raise PhaseError('Not in a game')
        except GameError as exc:
            conn.send(error_frame(exc.message))
            return
        conn.off('message', listener)


def _player_name(payload) -> str:
    name = payload.get('name')
    if not isinstance(name, str) or not name.strip():
        raise ProtocolError('Name is required')
    return name.strip()
