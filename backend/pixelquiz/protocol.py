"""Wire protocol: action names, frame codec and the error taxonomy.

Every frame is a JSON object carrying an ``action`` field. Errors raised
while handling a frame are ``GameError`` subclasses; whichever listener
raised one turns it into a single ERROR frame for the offending
connection.
"""

import json
from enum import Enum
from typing import Any, Dict


class Actions(str, Enum):
    # outbound
    HOSTED = 'HOSTED'
    JOINED = 'JOINED'
    LEFT = 'LEFT'
    STARTED = 'STARTED'
    QUESTION = 'QUESTION'
    RESPONDED = 'RESPONDED'
    ANSWER = 'ANSWER'
    ENDED = 'ENDED'
    CANCELLED = 'CANCELLED'
    ERROR = 'ERROR'
    # inbound
    HOST = 'HOST'
    JOIN = 'JOIN'
    START = 'START'
    CANCEL = 'CANCEL'
    LEAVE = 'LEAVE'
    READY = 'READY'
    RESPOND = 'RESPOND'


class GameError(Exception):
    """Base class for errors reported back to a single connection."""

    @property
    def message(self) -> str:
        return str(self)


class ProtocolError(GameError):
    """Unparsable frame, missing or unknown action."""


class PhaseError(GameError):
    """Action sent in the wrong session or round phase."""


class PermissionDenied(GameError):
    """Host-only command issued by somebody else."""


class InvalidResponse(GameError):
    """Bad choice index or a second answer in the same round."""


class JoinRejected(GameError):
    """Duplicate name or session already started."""


class GameIdExhausted(GameError):
    """No free game id could be generated within the retry bound."""


def frame(action: Actions, **fields: Any) -> Dict[str, Any]:
    return {'action': action.value, **fields}


def error_frame(message: str) -> Dict[str, Any]:
    return frame(Actions.ERROR, message=message)


def encode(payload: Dict[str, Any]) -> str:
    return json.dumps(payload)


def decode(data: Any) -> Dict[str, Any]:
    """Decode an inbound frame into a dict.

    Socket.IO clients may send the frame as a JSON string, as bytes, or as
    an already-parsed object; all three are accepted.
    """
    if isinstance(data, (bytes, bytearray)):
        data = data.decode('utf-8', errors='replace')
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise ProtocolError(f'Malformed frame: {exc}') from exc
    if not isinstance(data, dict):
        raise ProtocolError('Malformed frame: expected a JSON object')
    return data


def parse_action(payload: Dict[str, Any]):
    """Return the frame's action as ``Actions``, or ``None`` when absent.

    Unknown values raise ``ProtocolError`` with the raw value in the message.
    """
    action = payload.get('action')
    if action is None or action == '':
        return None
    try:
        return Actions(action)
    except ValueError:
        raise ProtocolError(f"Action '{action}' not recognized")
