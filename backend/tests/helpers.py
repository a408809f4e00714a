import json
import random
import threading
import time


def wait_for(predicate, timeout=3.0, interval=0.01):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FixedRandom(random.Random):
    """Random source whose ``randrange`` always lands on ``answer``."""

    def __init__(self, answer=0):
        super().__init__(1234)
        self.answer = answer

    def randrange(self, *args, **kwargs):
        return self.answer


class FixedPicker:
    def __init__(self, names):
        self.names = list(names)
        self.initialized = 0

    def initialize(self):
        self.initialized += 1

    def pick(self, count):
        return self.names[:count]


class Client:
    """In-memory participant wired into a ConnectionHub."""

    def __init__(self, hub, sid):
        self.hub = hub
        self.sid = sid
        self.frames = []
        self.conn = hub.open(sid, self._receive)

    def _receive(self, data):
        self.frames.append(json.loads(data))

    def send(self, action=None, **fields):
        payload = dict(fields)
        if action is not None:
            payload['action'] = action
        self.hub.message(self.sid, json.dumps(payload))

    def send_raw(self, data):
        self.hub.message(self.sid, data)

    def disconnect(self):
        self.hub.close(self.sid)

    def actions(self):
        return [f['action'] for f in list(self.frames)]

    def of(self, action):
        return [f for f in list(self.frames) if f['action'] == action]

    def last(self, action):
        found = self.of(action)
        return found[-1] if found else None

    def errors(self):
        return [f['message'] for f in self.of('ERROR')]


class Background(threading.Thread):
    """Runs a blocking call and keeps its result."""

    def __init__(self, target, *args, **kwargs):
        super().__init__(daemon=True)
        self._call = (target, args, kwargs)
        self.result = None
        self.error = None

    def run(self):
        target, args, kwargs = self._call
        try:
            self.result = target(*args, **kwargs)
        except Exception as exc:  # surfaced by the test through .error
            self.error = exc

    def wait(self, timeout=3.0):
        self.join(timeout)
        assert not self.is_alive(), 'background call did not finish'
        if self.error is not None:
            raise self.error
        return self.result
