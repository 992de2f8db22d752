"""Score accrual rules shared by every tick trigger.

All updates go through ``apply_delta`` so a score never drops below zero.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

MESSAGE = 'message'
INTERVAL = 'interval'
TICK_KINDS = (MESSAGE, INTERVAL)


@dataclass(frozen=True)
class ScoringRules:
    non_target: int = 1
    target: int = -5
    tagger_multiplier: float = 0.1
    tagged_multiplier: float = -0.1
    interval_sec: int = 5
    cooldown_intervals: int = 5

    @classmethod
    def from_config(cls, config: Mapping) -> 'ScoringRules':
        return cls(
            non_target=int(config.get('SCORE_NON_TARGET', 1)),
            target=int(config.get('SCORE_TARGET', -5)),
            tagger_multiplier=float(config.get('TIME_MULTIPLIER_TAGGER', 0.1)),
            tagged_multiplier=float(config.get('TIME_MULTIPLIER_TAGGED', -0.1)),
            interval_sec=max(1, int(config.get('TAG_INTERVAL_SEC', 5))),
            cooldown_intervals=max(0, int(config.get('TAG_COOLDOWN_INTERVALS', 5))),
        )

    @property
    def cooldown_ms(self) -> int:
        return self.interval_sec * self.cooldown_intervals * 1000


def apply_delta(scores: Dict[str, int], player: str, delta: int) -> int:
    """Add ``delta`` to ``player``'s score, flooring the result at zero."""
    new_score = max(scores.get(player, 0) + int(delta), 0)
    scores[player] = new_score
    return new_score


def apply_tick(scores: Dict[str, int], players: Iterable[str], target: Optional[str], rules: ScoringRules) -> None:
    for player in players:
        apply_delta(scores, player, rules.target if player == target else rules.non_target)


def elapsed_intervals(elapsed_ms: int, rules: ScoringRules) -> int:
    return max(0, int(elapsed_ms)) // (rules.interval_sec * 1000)


def apply_tag_bonus(scores: Dict[str, int], tagger: str, tagged: str, intervals: int, rules: ScoringRules) -> None:
    """Reward the tagger and charge the newly tagged player for the time elapsed.

    Both deltas are floored before being applied, so a short chase yields
    +0 for the tagger and -1 for the tagged player.
    """
    apply_delta(scores, tagger, math.floor(intervals * rules.tagger_multiplier))
    apply_delta(scores, tagged, math.floor(intervals * rules.tagged_multiplier))


def is_qualifying_message(event: Optional[Mapping]) -> bool:
    """Plain messages in public channels count; system subtypes do not."""
    if not isinstance(event, Mapping) or not event:
        return False
    if event.get('subtype'):
        return False
    channel_type = event.get('channel_type')
    return channel_type in (None, '', 'channel')
