from datetime import datetime, timezone
import json
import random
import string

from fakeso import db
from fakeso.services.games.nim import GAME_TYPE, Move, NimGame, state_from_fields


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': str(self.id),
            'username': self.username,
        }


class Message(db.Model):
    __tablename__ = 'message'
    id = db.Column(db.Integer, primary_key=True)
    msg = db.Column(db.Text, nullable=False)
    msg_from = db.Column(db.String(64), nullable=False, index=True)
    msg_date_time = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    type = db.Column(db.String(32), default='direct', nullable=False)

    def to_dict(self):
        return {
            'id': str(self.id),
            'msg': self.msg,
            'msg_from': self.msg_from,
            'msg_date_time': _iso(self.msg_date_time),
            'type': self.type,
        }


class Chat(db.Model):
    __tablename__ = 'chat'
    id = db.Column(db.Integer, primary_key=True)
    participants = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of usernames
    message_ids = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of message ids, insertion order
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    @property
    def participant_list(self):
        return json.loads(self.participants or '[]')

    @participant_list.setter
    def participant_list(self, value):
        self.participants = json.dumps(list(value))

    @property
    def message_id_list(self):
        return json.loads(self.message_ids or '[]')

    @message_id_list.setter
    def message_id_list(self, value):
        self.message_ids = json.dumps([int(v) for v in value])

    def to_dict(self):
        return {
            'id': str(self.id),
            'participants': self.participant_list,
            'messages': [str(m) for m in self.message_id_list],
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


def generate_game_id(length=8):
    """Generate a unique, short game id."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not db.session.get(Game, code):
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.String(16), primary_key=True)
    game_type = db.Column(db.String(32), nullable=False, default=GAME_TYPE)
    status = db.Column(db.String(32), nullable=False, default='WAITING_TO_START', index=True)
    players = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of usernames, turn order
    initial_pile = db.Column(db.Integer, nullable=False)
    remaining_objects = db.Column(db.Integer, nullable=False)
    moves = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of moves
    winners = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of usernames
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.id:
            self.id = generate_game_id()

    def to_game(self, max_players=2):
        """Rebuild the domain state machine from the stored row."""
        moves = [Move.from_dict(m) for m in json.loads(self.moves or '[]')]
        state = state_from_fields(
            self.status, moves, int(self.remaining_objects), json.loads(self.winners or '[]')
        )
        return NimGame(
            game_id=self.id,
            initial_pile=int(self.initial_pile),
            players=json.loads(self.players or '[]'),
            state=state,
            max_players=max_players,
        )

    def update_from(self, game):
        """Copy a domain game back onto the row."""
        data = game.to_dict()
        state = data['state']
        self.players = json.dumps(data['players'])
        self.status = state['status']
        self.remaining_objects = state['remaining_objects']
        self.moves = json.dumps(state.get('moves', []))
        self.winners = json.dumps(state.get('winners', []))

    def to_dict(self):
        payload = self.to_game().to_dict()
        payload['created_at'] = _iso(self.created_at)
        return payload
