import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from .protocol import GameError, decode, encode, error_frame

logger = logging.getLogger(__name__)

Listener = Callable[..., None]

_EVENTS = ('message', 'close')


class Connection:
    """One participant socket with an ordered pipeline of listeners.

    Message listeners receive the decoded frame dict. They run in
    registration order over a snapshot of the list, so a listener may
    detach itself (or others) while a frame is being dispatched.
    """

    def __init__(self, sid: str, send: Callable[[str], None]):
        self.sid = sid
        self.closed = False
        self.opened_at = time.time()
        self._send = send
        self._listeners: Dict[str, List[Listener]] = {event: [] for event in _EVENTS}

    def __repr__(self):
        state = 'closed' if self.closed else 'open'
        return f'<Connection {self.sid} {state}>'

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        try:
            self._listeners[event].remove(listener)
        except ValueError:
            pass

    def remove_all_listeners(self) -> None:
        for event in _EVENTS:
            self._listeners[event].clear()

    def listener_count(self, event: str) -> int:
        return len(self._listeners[event])

    def send(self, payload: Dict[str, Any]) -> None:
        if self.closed:
            return
        self._send(encode(payload))

    def dispatch(self, data: Any) -> None:
        try:
            payload = decode(data)
        except GameError as exc:
            self.send(error_frame(exc.message))
            return
        for listener in list(self._listeners['message']):
            listener(payload)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for listener in list(self._listeners['close']):
            listener()


class ConnectionHub:
    """Maps transport session ids to connections.

    Every inbound event runs under ``lock``; the round loop takes the same
    lock for its state-changing steps, so handlers never interleave.
    """

    def __init__(self, accept: Callable[[Connection], None], lock=None):
        self.accept = accept
        self.lock = lock if lock is not None else threading.RLock()
        self.connections: Dict[str, Connection] = {}

    def get(self, sid: str) -> Optional[Connection]:
        return self.connections.get(sid)

    def open(self, sid: str, send: Callable[[str], None]) -> Connection:
        with self.lock:
            conn = Connection(sid, send)
            self.connections[sid] = conn
            logger.info(f"[conn-open] sid={sid} open={len(self.connections)}")
            self.accept(conn)
            return conn

    def message(self, sid: str, data: Any) -> None:
        with self.lock:
            conn = self.connections.get(sid)
            if conn is None:
                logger.warning(f"[conn-unknown] sid={sid} dropped message")
                return
            conn.dispatch(data)

    def close(self, sid: str) -> None:
        with self.lock:
            conn = self.connections.pop(sid, None)
            if conn is None:
                return
            lifetime = int(time.time() - conn.opened_at)
            logger.info(f"[conn-close] sid={sid} lifetime={lifetime}s open={len(self.connections)}")
            conn.close()
