"""Error taxonomy for game sessions.

Every ``GameError`` is an expected, user-facing rejection: the operation that
raised it left the session untouched. ``InvariantViolation`` is not a
``GameError`` and must never be swallowed.
"""

from typing import Optional, Sequence


class GameError(Exception):
    code = 'game_error'
    message = 'Game error'
    status = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> dict:
        return {'error': self.message, 'code': self.code}


class AlreadyInProgress(GameError):
    code = 'already_in_progress'
    message = 'A game is already in progress.'
    status = 409


class NoSessionInProgress(GameError):
    code = 'no_session_in_progress'
    message = 'No game is currently in progress. Please start a game first.'
    status = 404


class AlreadyJoined(GameError):
    code = 'already_joined'
    message = 'You are already in the game.'
    status = 409


class NotInSession(GameError):
    code = 'not_in_session'
    message = 'You are not in the game.'


class CannotLeaveWhileTarget(GameError):
    code = 'cannot_leave_while_target'
    message = 'You cannot leave the game while you are it.'


class NoTargetSpecified(GameError):
    code = 'no_target_specified'
    message = 'Please specify a player to tag.'


class ActorNotInSession(GameError):
    code = 'actor_not_in_session'
    message = 'You are not a player in this game. Please join the game first.'
    status = 403


class ActorNotIt(GameError):
    code = 'actor_not_it'
    message = 'You can only tag while you are it.'
    status = 403


class TargetNotInSession(GameError):
    code = 'target_not_in_session'
    message = 'You can only tag players in the game.'


class SelfTagForbidden(GameError):
    code = 'self_tag_forbidden'
    message = 'You cannot tag yourself.'


class CooldownActive(GameError):
    code = 'cooldown_active'
    status = 429

    def __init__(self, seconds_remaining: int, elapsed_seconds: int):
        self.seconds_remaining = seconds_remaining
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f'You must wait {seconds_remaining} more seconds before tagging. '
            f'Time since last action: {elapsed_seconds} seconds.'
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['seconds_remaining'] = self.seconds_remaining
        data['elapsed_seconds'] = self.elapsed_seconds
        return data


class NotHost(GameError):
    code = 'not_host'
    message = 'Only the game host can stop the game.'
    status = 403


class UnknownGameKind(GameError):
    code = 'unknown_game_kind'
    status = 404

    def __init__(self, kind: str, available: Sequence[str] = ()):
        self.kind = kind
        self.available = list(available)
        listing = ', '.join(f'`{k}`' for k in self.available) or 'none'
        if kind:
            text = f'Unknown game type `{kind}`. Available types: {listing}.'
        else:
            text = f'Please specify a game type. Available types: {listing}.'
        super().__init__(text)


class InvariantViolation(RuntimeError):
    """Session state broke an invariant; this is a bug, not a user error."""


class PersistenceError(RuntimeError):
    """The session store could not be read or written."""
