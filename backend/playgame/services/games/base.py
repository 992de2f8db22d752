"""Session lifecycle shared by every game kind.

A ``Game`` is one session: membership, host, target, and the score ledger.
Concrete kinds subclass it and add their own actions (see ``tag.py``). All
methods here run inside a registry transaction, so they check every
precondition before mutating anything.
"""

import time
import uuid
from typing import Callable, Dict, List, Optional

from .errors import (
    AlreadyInProgress,
    AlreadyJoined,
    CannotLeaveWhileTarget,
    GameError,
    InvariantViolation,
    NoSessionInProgress,
    NotHost,
    NotInSession,
    PersistenceError,
)
from .scoring import INTERVAL, TICK_KINDS, ScoringRules, apply_tick


def now_ms() -> int:
    return int(time.time() * 1000)


class Game:
    kind = ''
    display_name = ''
    # When False, the current target must tag someone before leaving.
    allow_target_leave = True

    def __init__(
        self,
        channel: Optional[str] = None,
        rules: Optional[ScoringRules] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.session_id = uuid.uuid4().hex
        self.channel = channel
        self.rules = rules or ScoringRules()
        self.clock = clock or now_ms
        self.players: List[str] = []
        self.scores: Dict[str, int] = {}
        self.host: Optional[str] = None
        self.target: Optional[str] = None
        self.active = False
        self.last_action_ms = self.clock()

    # ---- lifecycle ----

    def start(self, founder: str) -> None:
        if self.active:
            raise AlreadyInProgress()
        self.players = [founder]
        self.scores = {founder: 0}
        self.host = founder
        self.target = founder
        self.active = True
        self.last_action_ms = self.clock()

    def join(self, player: str) -> None:
        self._require_active()
        if player in self.players:
            raise AlreadyJoined()
        self.players.append(player)
        self.scores.setdefault(player, 0)

    def leave(self, player: str) -> None:
        """Remove ``player``; the last member leaving ends the session."""
        self._require_active()
        if player not in self.players:
            raise NotInSession()
        remaining = [p for p in self.players if p != player]
        if player == self.target and remaining and not self.allow_target_leave:
            raise CannotLeaveWhileTarget()

        self.players = remaining
        if not remaining:
            self._teardown()
            return
        if self.target == player:
            self.target = remaining[0]
        if self.host == player:
            self.host = remaining[0]

    def stop(self, requester: str) -> None:
        self._require_active()
        if requester != self.host:
            raise NotHost()
        self._teardown()

    def tick(self, kind: str) -> bool:
        """Apply one scoring tick. Ticks against an inactive session do nothing."""
        if kind not in TICK_KINDS:
            raise ValueError(f'unknown tick kind: {kind}')
        if not self.active:
            return False
        apply_tick(self.scores, self.players, self.target, self.rules)
        if kind == INTERVAL:
            self.last_action_ms = self.clock()
        return True

    def tag(self, actor: str, candidate: Optional[str]) -> dict:
        raise GameError(f'`{self.kind}` has no tag action.')

    def _require_active(self) -> None:
        if not self.active:
            raise NoSessionInProgress()

    def _teardown(self) -> None:
        self.players = []
        self.scores = {}
        self.host = None
        self.target = None
        self.active = False

    # ---- consistency ----

    def check_invariants(self) -> None:
        if len(set(self.players)) != len(self.players):
            raise InvariantViolation(f'duplicate players in session {self.session_id}: {self.players}')
        negative = {p: s for p, s in self.scores.items() if s < 0}
        if negative:
            raise InvariantViolation(f'negative scores in session {self.session_id}: {negative}')
        if self.active:
            if not self.players:
                raise InvariantViolation(f'active session {self.session_id} has no players')
            if self.target not in self.players:
                raise InvariantViolation(f'target {self.target!r} is not a player in session {self.session_id}')
            if self.host not in self.players:
                raise InvariantViolation(f'host {self.host!r} is not a player in session {self.session_id}')
        elif self.target is not None or self.host is not None:
            raise InvariantViolation(f'inactive session {self.session_id} still has a target or host')

    # ---- projections ----

    def snapshot(self) -> dict:
        leaderboard = sorted(self.scores.items(), key=lambda item: (-item[1], item[0]))
        return {
            'kind': self.kind,
            'session_id': self.session_id,
            'active': self.active,
            'channel': self.channel,
            'players': list(self.players),
            'scores': dict(self.scores),
            'host': self.host,
            'target': self.target,
            'lastActionTimestamp': self.last_action_ms,
            'leaderboard': [{'player': p, 'score': s} for p, s in leaderboard],
        }

    def to_record(self) -> dict:
        return {
            'players': list(self.players),
            'scores': [[player, score] for player, score in self.scores.items()],
            'target': self.target,
            'host': self.host,
            'channel': self.channel,
            'lastActionTimestamp': self.last_action_ms,
        }

    @classmethod
    def from_record(
        cls,
        record: dict,
        rules: Optional[ScoringRules] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> 'Game':
        """Rebuild an active session from a stored record."""
        try:
            players = [str(p) for p in record['players']]
            scores = {str(p): max(int(s), 0) for p, s in record.get('scores') or []}
            target = record.get('target')
            last_action = int(record['lastActionTimestamp'])
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f'malformed session record: {exc}') from exc
        if not players:
            raise PersistenceError('stored session has no players')
        if len(set(players)) != len(players):
            raise PersistenceError('stored session lists a player twice')
        if target not in players:
            raise PersistenceError(f'stored target {target!r} is not a player')

        game = cls(channel=record.get('channel'), rules=rules, clock=clock)
        game.players = players
        game.scores = scores
        for player in players:
            game.scores.setdefault(player, 0)
        game.target = target
        host = record.get('host')
        game.host = host if host in players else players[0]
        game.last_action_ms = last_action
        game.active = True
        return game

    def __repr__(self):
        return f'<{type(self).__name__} {self.session_id} active={self.active} players={len(self.players)}>'
