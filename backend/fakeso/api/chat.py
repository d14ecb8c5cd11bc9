from flask import Blueprint, jsonify, request

from fakeso.errors import InvalidRequestError
from fakeso.services import chat as chat_service


chat = Blueprint('chat', __name__)


def _body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequestError('Request body must be a JSON object')
    return data


@chat.route('/createChat', methods=['POST'])
def create_chat():
    """
    Creates a chat between the given participants, with optional initial messages.
    """
    data = _body()
    created = chat_service.create_chat(data.get('participants'), data.get('messages') or [])
    return jsonify(created), 200


@chat.route('/<string:chat_id>/addMessage', methods=['POST'])
def add_message(chat_id):
    """
    Appends a direct message to a chat and pushes it to the chat room.
    """
    data = _body()
    updated = chat_service.append_message(
        chat_id, data.get('msg'), data.get('msg_from'), data.get('msg_date_time')
    )
    return jsonify(updated), 200


@chat.route('/<string:chat_id>', methods=['GET'])
def get_chat(chat_id):
    return jsonify(chat_service.get_chat(chat_id)), 200


@chat.route('/<string:chat_id>/addParticipant', methods=['POST'])
def add_participant(chat_id):
    data = _body()
    updated = chat_service.add_participant(chat_id, data.get('user_id'))
    return jsonify(updated), 200


@chat.route('/getChatsByUser/<string:username>', methods=['GET'])
def get_chats_by_user(username):
    """
    Returns every chat the user participates in. Chats that fail to load are
    reported in place with an ``error`` entry.
    """
    return jsonify(chat_service.list_chats_for(username)), 200
