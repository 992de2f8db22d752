import math
from typing import Optional

from .base import Game
from .errors import (
    ActorNotInSession,
    ActorNotIt,
    CooldownActive,
    NoTargetSpecified,
    SelfTagForbidden,
    TargetNotInSession,
)
from .scoring import apply_tag_bonus, elapsed_intervals


class TagGame(Game):
    """Classic tag: whoever is "it" passes it on, and being "it" costs points."""

    kind = 'tag'
    display_name = 'Tag'

    def tag(self, actor: str, candidate: Optional[str]) -> dict:
        """Pass "it" from ``actor`` to ``candidate``.

        Preconditions are checked in a fixed order and the first failure
        wins, so a player who is not "it" tagging themselves is told they are
        not "it".
        """
        self._require_active()
        candidate = (candidate or '').strip()
        if not candidate:
            raise NoTargetSpecified()
        if actor not in self.players:
            raise ActorNotInSession()
        if actor != self.target:
            raise ActorNotIt()
        if candidate not in self.players:
            raise TargetNotInSession()
        if actor == candidate:
            raise SelfTagForbidden()

        now = self.clock()
        elapsed_ms = max(0, now - self.last_action_ms)
        intervals = elapsed_intervals(elapsed_ms, self.rules)
        if intervals < self.rules.cooldown_intervals:
            remaining = math.ceil((self.rules.cooldown_ms - elapsed_ms) / 1000)
            raise CooldownActive(seconds_remaining=max(remaining, 1), elapsed_seconds=elapsed_ms // 1000)

        self.target = candidate
        self.last_action_ms = now
        apply_tag_bonus(self.scores, actor, candidate, intervals, self.rules)
        return {'tagger': actor, 'tagged': candidate, 'intervals': intervals}
