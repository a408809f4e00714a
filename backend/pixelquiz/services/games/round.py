"""One question cycle: a readiness barrier followed by answer collection.

A Round holds the session's own ``players`` dict, not a copy. Departures
therefore shrink the completion threshold of whichever phase is running;
the session tells the round about them through ``forget``.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Set, Tuple

from pixelquiz.connection import Connection
from pixelquiz.protocol import (
    Actions,
    GameError,
    InvalidResponse,
    PhaseError,
    error_frame,
    frame,
)
from .scheduler import PhaseLatch
from .scoring import Player, leaderboard

logger = logging.getLogger(__name__)


class Round:

    def __init__(
        self,
        choices: List[str],
        answer: int,
        media_locator: str,
        pixelation: int,
        players: Dict[str, Player],
        lock=None,
    ):
        self.choices = list(choices)
        self.answer = answer
        self.media_locator = media_locator
        self.pixelation = max(1, int(pixelation))
        self.players = players
        self.lock = lock if lock is not None else threading.RLock()
        self.phase: Optional[str] = None
        self.ready_names: Set[str] = set()
        self.results: Dict[str, int] = {}
        self._latch: Optional[PhaseLatch] = None
        self._listeners: List[Tuple[Connection, Callable]] = []

    # -- readiness barrier -------------------------------------------------

    def ready(self, timeout: Optional[float] = None) -> Set[str]:
        """Broadcast STARTED and wait until every remaining player is ready.

        Returns the names that signalled ready before the phase closed.
        """
        with self.lock:
            self.phase = 'ready'
            self.ready_names = set()
            self._latch = PhaseLatch('ready', self.lock, self._finish_ready)
            self._attach(self._on_ready_message)
            self._broadcast(frame(Actions.STARTED))
            self._check_ready()
        self._latch.wait(timeout)
        return set(self.ready_names)

    def _on_ready_message(self, name: str, payload) -> None:
        action = payload.get('action')
        try:
            if action == Actions.READY:
                if name in self.players:
                    self.ready_names.add(name)
                    self._check_ready()
            elif action == Actions.RESPOND:
                raise PhaseError('Round has not started yet')
        except GameError as exc:
            self._reply_error(name, exc)

    def _check_ready(self) -> None:
        if len(self.ready_names) >= len(self.players):
            self._latch.fire('complete')

    def _finish_ready(self, reason: str) -> None:
        self._detach()
        logger.info(
            f"[round-ready] reason={reason} ready={len(self.ready_names)} players={len(self.players)}"
        )

    # -- answer collection -------------------------------------------------

    def run(self, timeout: Optional[float] = None) -> Dict[str, int]:
        """Broadcast the question, collect one answer per player, send results.

        Returns a mapping of player name to the chosen index.
        """
        with self.lock:
            self.phase = 'run'
            self.results = {}
            self._latch = PhaseLatch('run', self.lock, self._finish_run)
            self._attach(self._on_run_message)
            self._broadcast(frame(
                Actions.QUESTION,
                choices=self.choices,
                mediaLocator=self.media_locator,
                pixelation=self.pixelation,
            ))
            self._check_run()
        self._latch.wait(timeout)
        return dict(self.results)

    def _on_run_message(self, name: str, payload) -> None:
        action = payload.get('action')
        try:
            if action == Actions.READY:
                raise PhaseError('Round already started')
            elif action == Actions.RESPOND:
                self._respond(name, payload.get('choice'))
        except GameError as exc:
            self._reply_error(name, exc)

    def _respond(self, name: str, choice) -> None:
        if not self._valid_choice(choice):
            raise InvalidResponse('No choice or choice invalid')
        if name in self.results:
            raise InvalidResponse('Already responded')
        player = self.players.get(name)
        if player is None:
            return
        choice = int(choice)
        self.results[name] = choice
        player.update(choice == self.answer)
        self._broadcast(frame(Actions.RESPONDED, count=len(self.results)))
        self._check_run()

    def _valid_choice(self, choice) -> bool:
        # bool is an int subclass; True must not select choices[1]
        if isinstance(choice, bool) or not isinstance(choice, (int, float)):
            return False
        if isinstance(choice, float) and not choice.is_integer():
            return False
        return 0 <= choice < len(self.choices)

    def _check_run(self) -> None:
        if len(self.results) >= len(self.players):
            self._latch.fire('complete')

    def _finish_run(self, reason: str) -> None:
        self._detach()
        board = leaderboard(self.players)
        for name, player in list(self.players.items()):
            player.send(frame(
                Actions.ANSWER,
                answer=self.answer,
                correct=self.results.get(name) == self.answer,
                leaderboard=board,
            ))
        logger.info(
            f"[round-answered] reason={reason} responses={len(self.results)} players={len(self.players)}"
        )

    # -- membership --------------------------------------------------------

    def forget(self, name: str) -> None:
        """Drop a departed player and re-check the running phase."""
        with self.lock:
            if self._latch is None or self._latch.fired:
                return
            if self.phase == 'ready':
                self.ready_names.discard(name)
                self._check_ready()
            elif self.phase == 'run':
                self.results.pop(name, None)
                self._check_run()

    # -- helpers -----------------------------------------------------------

    def _attach(self, handler) -> None:
        self._listeners = []
        for name, player in self.players.items():
            def listener(payload, name=name):
                handler(name, payload)
            player.connection.on('message', listener)
            self._listeners.append((player.connection, listener))

    def _detach(self) -> None:
        for connection, listener in self._listeners:
            connection.off('message', listener)
        self._listeners = []

    def _broadcast(self, payload) -> None:
        for player in list(self.players.values()):
            player.send(payload)

    def _reply_error(self, name: str, exc: GameError) -> None:
        player = self.players.get(name)
        if player is not None:
            player.send(error_frame(exc.message))
