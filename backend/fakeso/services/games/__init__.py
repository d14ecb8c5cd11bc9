"""Game domain services.

``nim`` holds the pure state machine; ``manager`` persists and serializes
operations on it and publishes the resulting snapshots. Routes and socket
handlers import ``manager``, keeping transport concerns separated from core
game mechanics.
"""
