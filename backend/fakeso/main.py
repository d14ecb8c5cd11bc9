from flask import Blueprint, request, jsonify

from fakeso import store
from fakeso.errors import InvalidRequestError, UserNotFoundError

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the FakeSO realtime server!'})


@main.route('/api/users/add', methods=['POST'])
def add_user():
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    if not isinstance(username, str) or not username.strip():
        raise InvalidRequestError('Missing username')

    if store.find_user_by_username(username):
        return jsonify({'error': 'conflict', 'message': 'Username already exists'}), 409

    user = store.create_user(username)
    return jsonify(user.to_dict()), 201


@main.route('/api/users/<string:user_id>', methods=['GET'])
def get_user(user_id):
    user = store.resolve_user(user_id)
    if user is None:
        raise UserNotFoundError(f'User {user_id} not found')
    return jsonify(user.to_dict())
