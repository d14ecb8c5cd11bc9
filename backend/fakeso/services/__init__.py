"""Realtime core services: room membership, broadcasting, chats and games.

Transport code (blueprints and socket handlers) reaches the app-owned
registry and broadcaster through ``get_registry`` / ``get_broadcaster``.
"""

from flask import current_app


def get_registry():
    return current_app.extensions['fakeso.rooms']


def get_broadcaster():
    return current_app.extensions['fakeso.broadcaster']
