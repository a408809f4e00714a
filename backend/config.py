import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of origins allowed for HTTP and Socket.IO
    CORS_ORIGINS = os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    )
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # Round phases block on threading primitives, so real threads are the default
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE') or 'threading'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Game defaults; hosts may override per game
    ROUNDS = int(os.environ.get('ROUNDS', '10'))
    CHOICE_COUNT = int(os.environ.get('CHOICE_COUNT', '4'))
    PIXELATION = int(os.environ.get('PIXELATION', '1'))
    SPECIES_GENERATION = int(os.environ.get('SPECIES_GENERATION', '0'))
    # Phase deadlines (seconds). 0 disables the deadline.
    READY_TIMEOUT_SEC = float(os.environ.get('READY_TIMEOUT_SEC', '0'))
    RUN_TIMEOUT_SEC = float(os.environ.get('RUN_TIMEOUT_SEC', '0'))
    # Game id generation. GAME_ID_TRIES=0 retries without bound.
    GAME_ID_CHARSET = os.environ.get('GAME_ID_CHARSET', 'abcdefghijklmnopqrstuvwxyz123456789')
    GAME_ID_LENGTH = int(os.environ.get('GAME_ID_LENGTH', '6'))
    GAME_ID_TRIES = int(os.environ.get('GAME_ID_TRIES', '0'))
    # Content source
    POKEAPI_URL = os.environ.get('POKEAPI_URL', 'https://pokeapi.co/api/v2')
    HTTP_TIMEOUT_SEC = float(os.environ.get('HTTP_TIMEOUT_SEC', '10'))
