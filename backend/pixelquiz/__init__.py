import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
import requests
from config import Config

socketio = SocketIO(async_mode=None)


def _origins(config):
    raw = config.get('CORS_ORIGINS') or ''
    return [o.strip() for o in raw.split(',') if o.strip()]


def create_app(config_class=Config, picker_factory=None, sprites=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    logging.basicConfig(
        level=flask_app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    allowed_origins = _origins(flask_app.config)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        async_mode=flask_app.config.get('SOCKETIO_ASYNC_MODE'),
    )

    from pixelquiz.connection import ConnectionHub
    from pixelquiz.services.games import GameOptions, GameRegistry
    from pixelquiz.services.pokeapi import SpeciesPicker, SpriteService

    api_url = flask_app.config.get('POKEAPI_URL')
    http_timeout = float(flask_app.config.get('HTTP_TIMEOUT_SEC', 10))
    http = requests.Session()
    if picker_factory is None:
        def picker_factory(generation):
            return SpeciesPicker(generation, api_url=api_url, timeout=http_timeout, session=http)
    if sprites is None:
        sprites = SpriteService(api_url=api_url, timeout=http_timeout, session=http)

    registry = GameRegistry(
        picker_factory,
        sprites,
        defaults=GameOptions.from_config(flask_app.config),
        charset=flask_app.config.get('GAME_ID_CHARSET') or GameRegistry.ALPHANUM_CHARSET,
        id_len=flask_app.config.get('GAME_ID_LENGTH', 6),
        tries=flask_app.config.get('GAME_ID_TRIES', 0),
        spawn=socketio.start_background_task,
    )
    hub = ConnectionHub(registry.accept, lock=registry.lock)
    flask_app.extensions['pixelquiz'] = {'registry': registry, 'hub': hub}

    # Import and register blueprints here
    from pixelquiz.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from pixelquiz.socketio_events import register_socketio_handlers
    register_socketio_handlers(
        namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'),
        testing=flask_app.config.get('TESTING', False),
    )

    @click.command('games')
    def games_command():
        """Lists the games that are waiting in the lobby."""
        open_games = registry.joinable()
        if not open_games:
            click.echo('No open games.')
        for game in open_games:
            names = ', '.join(p['name'] for p in game['players'])
            click.echo(f"{game['id']}  host={game['host']}  players={names}")

    flask_app.cli.add_command(games_command)

    return flask_app
