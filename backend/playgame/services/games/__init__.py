"""Game domain services: session lifecycle, scoring, persistence, timers.

This package holds the game engine used by HTTP routes and socket handlers,
keeping transport concerns separated from core game mechanics.
"""

from flask import current_app


def get_registry():
    return current_app.extensions['game_registry']
