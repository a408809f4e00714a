import os
import sys
import pytest

# Ensure the backend root (containing the `pixelquiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from pixelquiz import create_app, socketio
from pixelquiz.connection import ConnectionHub
from pixelquiz.services.games import GameOptions, GameRegistry
from pixelquiz.services.pokeapi import StaticSpriteService

from helpers import Client, FixedPicker, FixedRandom

KANTO = ['Pidgey', 'Rattata', 'Spearow', 'Zubat', 'Mr Mime']


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = 'http://localhost:5173'
    SOCKETIO_NAMESPACE = '/ws'
    SOCKETIO_ASYNC_MODE = 'threading'
    LOG_LEVEL = 'DEBUG'
    ROUNDS = 1
    CHOICE_COUNT = 4
    PIXELATION = 3
    SPECIES_GENERATION = 1
    READY_TIMEOUT_SEC = 0
    RUN_TIMEOUT_SEC = 0
    GAME_ID_CHARSET = 'abcdefghijklmnopqrstuvwxyz123456789'
    GAME_ID_LENGTH = 4
    GAME_ID_TRIES = 50
    POKEAPI_URL = 'http://pokeapi.invalid/api/v2'
    HTTP_TIMEOUT_SEC = 1


@pytest.fixture()
def flask_app():
    application = create_app(
        TestConfig,
        picker_factory=lambda generation: FixedPicker(KANTO),
        sprites=StaticSpriteService(),
    )
    application.extensions['pixelquiz']['registry'].rng = FixedRandom(answer=1)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def picker():
    return FixedPicker(KANTO)


@pytest.fixture()
def sprites():
    return StaticSpriteService()


@pytest.fixture()
def registry(picker, sprites):
    return GameRegistry(
        lambda generation: picker,
        sprites,
        defaults=GameOptions(rounds=1, count=4),
        rng=FixedRandom(answer=1),
    )


@pytest.fixture()
def hub(registry):
    return ConnectionHub(registry.accept, lock=registry.lock)


@pytest.fixture()
def make_client(hub):
    def _make(sid):
        return Client(hub, sid)
    return _make
