import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional

from pixelquiz.connection import Connection
from pixelquiz.protocol import (
    Actions,
    GameError,
    JoinRejected,
    PermissionDenied,
    PhaseError,
    ProtocolError,
    error_frame,
    frame,
    parse_action,
)
from pixelquiz.services.pokeapi import species_key
from .round import Round
from .scoring import Player, leaderboard

logger = logging.getLogger(__name__)


def _seconds(value) -> Optional[float]:
    """Timeouts of ``None``, <= 0 or too long to wait on mean "wait forever"."""
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value) or value >= threading.TIMEOUT_MAX:
        return None
    return value if value > 0 else None


@dataclass(frozen=True)
class GameOptions:
    rounds: int = 10
    count: int = 4
    pixelation: int = 1
    generation: int = 0
    ready_timeout: Optional[float] = None
    run_timeout: Optional[float] = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'GameOptions':
        return cls(
            rounds=max(1, int(config.get('ROUNDS', 10))),
            count=max(1, int(config.get('CHOICE_COUNT', 4))),
            pixelation=max(1, int(config.get('PIXELATION', 1))),
            generation=max(0, int(config.get('SPECIES_GENERATION', 0))),
            ready_timeout=_seconds(config.get('READY_TIMEOUT_SEC')),
            run_timeout=_seconds(config.get('RUN_TIMEOUT_SEC')),
        )

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> 'GameOptions':
        """Apply per-game overrides sent by the host.

        Accepts ``rounds``, ``count``, ``pixelation``, ``gen`` and
        ``timeouts: {ready, run}`` (seconds).
        """
        if not overrides:
            return self
        if not isinstance(overrides, Mapping):
            raise ProtocolError('Options must be an object')
        changes: Dict[str, Any] = {}
        try:
            if 'rounds' in overrides:
                changes['rounds'] = max(1, int(overrides['rounds']))
            if 'count' in overrides:
                changes['count'] = max(1, int(overrides['count']))
            if 'pixelation' in overrides:
                changes['pixelation'] = max(1, int(overrides['pixelation']))
            if 'gen' in overrides:
                changes['generation'] = max(0, int(overrides['gen']))
            timeouts = overrides.get('timeouts') or {}
            if not isinstance(timeouts, Mapping):
                raise ProtocolError('Timeouts must be an object')
            if 'ready' in timeouts:
                changes['ready_timeout'] = _seconds(timeouts['ready'])
            if 'run' in timeouts:
                changes['run_timeout'] = _seconds(timeouts['run'])
        except (TypeError, ValueError, OverflowError) as exc:
            raise ProtocolError(f'Invalid options: {exc}') from exc
        return replace(self, **changes)


class Game:
    """A hosted session: lobby, sequential round loop, termination.

    ``players`` is ordered by join time and is handed to every Round as-is.
    All mutation happens under the registry's event lock.
    """

    def __init__(self, registry, game_id: str, host_name: str, host_conn: Connection,
                 options: GameOptions):
        self.registry = registry
        self.id = game_id
        self.host = host_name
        self.options = options
        self.lock = registry.lock
        self.started = False
        self.finished = False
        self.round: Optional[Round] = None
        self.rounds_played = 0
        self.picker = registry.picker_factory(options.generation)
        self.players: Dict[str, Player] = {}

        self._add(host_name, host_conn)
        host_conn.send(frame(Actions.HOSTED, id=self.id, players=self.player_names()))
        logger.info(f"[game-hosted] game={self.id} host={host_name} options={options}")

    def __repr__(self):
        return f'<Game {self.id} players={len(self.players)} started={self.started}>'

    def player_names(self) -> List[str]:
        return list(self.players.keys())

    def summary(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'host': self.host,
            'started': self.started,
            'players': [p.to_dict() for p in self.players.values()],
            'rounds': self.options.rounds,
        }

    # -- membership --------------------------------------------------------

    def add_player(self, name: str, conn: Connection) -> Player:
        if name in self.players:
            raise JoinRejected(f"Player '{name}' already exists")
        if self.started:
            raise JoinRejected('Game already started')
        player = self._add(name, conn)
        self._broadcast(frame(Actions.JOINED, id=self.id, players=self.player_names()))
        logger.info(f"[game-joined] game={self.id} name={name} players={len(self.players)}")
        return player

    def _add(self, name: str, conn: Connection) -> Player:
        player = Player(name, conn)
        self.players[name] = player
        conn.on('message', lambda payload: self._on_message(name, payload))
        conn.on('close', lambda: self._on_close(name))
        return player

    def remove_player(self, name: str) -> None:
        player = self.players.pop(name, None)
        if player is None:
            return
        self._broadcast(frame(Actions.LEFT, id=self.id, players=self.player_names()))
        if player.connected:
            player.send(frame(Actions.LEFT, id='', players=[]))
            self._release(player)
        logger.info(f"[game-left] game={self.id} name={name} players={len(self.players)}")
        if self.round is not None:
            self.round.forget(name)
        if not self.players:
            self.registry.discard(self)

    def _release(self, player: Player) -> None:
        player.connection.remove_all_listeners()
        self.registry.accept(player.connection)

    # -- inbound -----------------------------------------------------------

    def _on_message(self, name: str, payload) -> None:
        player = self.players.get(name)
        if player is None:
            return
        try:
            self._handle(name, parse_action(payload))
        except GameError as exc:
            player.send(error_frame(exc.message))

    def _handle(self, name: str, action: Optional[Actions]) -> None:
        is_host = name == self.host
        if action is None:
            raise ProtocolError('No action specified')
        if action == Actions.LEAVE:
            if is_host and not self.started:
                self.cancel()
            else:
                self.remove_player(name)
        elif action == Actions.START:
            if not is_host:
                raise PermissionDenied('Only host can start game')
            if self.started:
                raise PhaseError('Game already started')
            self.start()
        elif action == Actions.CANCEL:
            if not is_host:
                raise PermissionDenied('Only host can cancel game')
            if self.started:
                raise PhaseError('Game already started')
            self.cancel()
        elif action in (Actions.READY, Actions.RESPOND):
            # the active Round listener owns these once the game has started
            if not self.started:
                raise PhaseError('Game has not started yet')
        elif action in (Actions.HOST, Actions.JOIN):
            raise PhaseError('Already in a game')
        else:
            raise ProtocolError(f"Action '{action.value}' not recognized")

    def _on_close(self, name: str) -> None:
        if name == self.host and not self.started:
            self.cancel()
        else:
            self.remove_player(name)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        self.registry.discard(self)
        self.started = True
        logger.info(f"[game-start] game={self.id} players={len(self.players)} rounds={self.options.rounds}")
        self.registry.spawn(self.play)

    def cancel(self) -> None:
        self.registry.discard(self)
        logger.info(f"[game-cancel] game={self.id} players={len(self.players)}")
        self._terminate(frame(Actions.CANCELLED))

    def play(self) -> None:
        """Run every round in order, then announce the final leaderboard.

        Runs as a background task. Waiting and content lookups happen
        without the event lock.
        """
        try:
            self.picker.initialize()
            for index in range(self.options.rounds):
                with self.lock:
                    if not self.players:
                        logger.info(f"[game-abandoned] game={self.id} round={index}")
                        self.finished = True
                        return
                current = self._next_round()
                with self.lock:
                    self.round = current
                logger.info(f"[round-start] game={self.id} round={index + 1}/{self.options.rounds}")
                current.ready(self.options.ready_timeout)
                current.run(self.options.run_timeout)
                with self.lock:
                    self.round = None
                    self.rounds_played += 1
            with self.lock:
                logger.info(f"[game-ended] game={self.id} rounds={self.rounds_played}")
                self._terminate(frame(Actions.ENDED, leaderboard=leaderboard(self.players)))
        except Exception:
            logger.exception(f"[game-error] game={self.id} round loop failed")
            with self.lock:
                self.round = None
                self._terminate(frame(Actions.CANCELLED))

    def _next_round(self) -> Round:
        choices = self.picker.pick(self.options.count)
        answer = self.registry.rng.randrange(len(choices))
        locator = self.registry.sprites.get_data_url(species_key(choices[answer]))
        return Round(choices, answer, locator, self.options.pixelation, self.players, lock=self.lock)

    def _terminate(self, payload) -> None:
        self._broadcast(payload)
        for player in list(self.players.values()):
            if player.connected:
                self._release(player)
        self.players.clear()
        self.finished = True

    def _broadcast(self, payload) -> None:
        for player in list(self.players.values()):
            player.send(payload)
