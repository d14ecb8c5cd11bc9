from flask import Blueprint, jsonify, request

from fakeso.errors import InvalidRequestError
from fakeso.services.games import manager
from fakeso.services.games.nim import GAME_TYPE


games = Blueprint('games', __name__)


def _body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequestError('Request body must be a JSON object')
    return data


@games.route('/', methods=['GET'])
def list_games():
    game_type = request.args.get('game_type') or None
    status = request.args.get('status') or None
    return jsonify(manager.list_games(game_type, status))


@games.route('/create', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}
    pile = data.get('pile_size')
    if pile is not None:
        try:
            pile = int(pile)
        except (TypeError, ValueError):
            raise InvalidRequestError('pile_size must be an integer')
    state = manager.create_game(data.get('game_type') or GAME_TYPE, pile)
    return jsonify(state), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = _body()
    game_id = data.get('game_id')
    if not game_id:
        raise InvalidRequestError('game_id is required')
    return jsonify(manager.join(game_id, data.get('player_id')))


@games.route('/leave', methods=['POST'])
def leave_game():
    data = _body()
    game_id = data.get('game_id')
    if not game_id:
        raise InvalidRequestError('game_id is required')
    return jsonify(manager.leave(game_id, data.get('player_id')))


@games.route('/<string:game_id>', methods=['GET'])
def get_game(game_id):
    return jsonify(manager.get_game(game_id))


@games.route('/<string:game_id>/move', methods=['POST'])
def make_move(game_id):
    """
    Request/response variant of the ``make_move`` socket event. Rejections are
    returned to the caller only.
    """
    data = _body()
    return jsonify(manager.apply_move(game_id, data.get('player_id'), data.get('count')))
