from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


def _registry():
    return current_app.extensions['pixelquiz']['registry']


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the PixelQuiz game server!'})


@main.route('/api/games')
def list_games():
    """Games still in the lobby, i.e. the ones that can be joined."""
    return jsonify(_registry().joinable())


@main.route('/api/games/<string:game_id>')
def get_game(game_id):
    registry = _registry()
    with registry.lock:
        game = registry.get_game(game_id)
        if not game:
            return jsonify({'error': 'Game not found'}), 404
        return jsonify(game.summary())
