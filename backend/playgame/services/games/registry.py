"""Game registry: maps game kinds to implementations and owns the one live session.

Every operation that reads and then mutates the session runs under the
registry lock, so a check and the mutation it guards can never interleave
with another request or a timer tick.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple, Type

from .base import Game, now_ms
from .errors import AlreadyInProgress, NoSessionInProgress, PersistenceError, UnknownGameKind
from .scoring import ScoringRules


class GameRegistry:
    def __init__(
        self,
        store=None,
        rules: Optional[ScoringRules] = None,
        clock: Optional[Callable[[], int]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._kinds: Dict[str, Type[Game]] = {}
        self._session: Optional[Game] = None
        # (session_id, timer name) for every live background timer
        self.timer_keys: Set[Tuple[str, str]] = set()
        self._lock = threading.RLock()
        self.store = store
        self.rules = rules or ScoringRules()
        self.clock = clock or now_ms
        self.logger = logger or logging.getLogger(__name__)

    def register(self, game_cls: Type[Game]) -> None:
        kind = (game_cls.kind or '').strip().lower()
        if not kind:
            raise ValueError('Game kind is empty')
        self._kinds[kind] = game_cls

    def kinds(self) -> List[str]:
        return list(self._kinds.keys())

    def describe_kinds(self) -> List[dict]:
        return [{'kind': k, 'name': cls.display_name or k} for k, cls in self._kinds.items()]

    def current(self) -> Optional[Game]:
        with self._lock:
            game = self._session
            return game if game is not None and game.active else None

    # ---- core API ----

    def create_session(self, kind: str, founder: str, channel: Optional[str] = None) -> Game:
        with self._lock:
            if self.current() is not None:
                raise AlreadyInProgress()
            gid = (kind or '').strip().lower()
            game_cls = self._kinds.get(gid)
            if game_cls is None:
                raise UnknownGameKind(gid, self.kinds())
            game = game_cls(channel=channel, rules=self.rules, clock=self.clock)
            game.start(founder)
            game.check_invariants()
            self._session = game
            self._persist(game)
            self.logger.info(f"[session-start] kind={gid} session={game.session_id} host={founder} channel={channel}")
            return game

    @contextmanager
    def transaction(self) -> Iterator[Game]:
        """Yield the live session under the lock; persist it if the block completes.

        A ``GameError`` raised inside the block propagates without persisting,
        leaving the session as it was.
        """
        with self._lock:
            game = self.current()
            if game is None:
                raise NoSessionInProgress()
            yield game
            game.check_invariants()
            self._persist(game)

    def join(self, player: str) -> Game:
        with self.transaction() as game:
            game.join(player)
            self.logger.info(f"[session-join] session={game.session_id} player={player}")
            return game

    def leave(self, player: str) -> Tuple[Game, Optional[str]]:
        """Remove a player; returns the session and the host it had before the leave."""
        with self.transaction() as game:
            previous_host = game.host
            game.leave(player)
            self.logger.info(
                f"[session-leave] session={game.session_id} player={player} host={game.host} target={game.target} active={game.active}"
            )
            return game, previous_host

    def tag(self, actor: str, candidate: Optional[str]) -> dict:
        with self.transaction() as game:
            result = game.tag(actor, candidate)
            self.logger.info(f"[tag] session={game.session_id} tagger={actor} tagged={result['tagged']} intervals={result['intervals']}")
            return result

    def stop(self, requester: str) -> Game:
        with self.transaction() as game:
            game.stop(requester)
            self.logger.info(f"[session-stop] session={game.session_id} by={requester}")
            return game

    def tick(self, kind: str, session_id: Optional[str] = None) -> bool:
        """Apply a scoring tick. Returns False when there is no matching live session."""
        with self._lock:
            game = self.current()
            if game is None or (session_id is not None and game.session_id != session_id):
                return False
            game.tick(kind)
            game.check_invariants()
            self._persist(game)
            return True

    def autosave(self, session_id: Optional[str] = None) -> bool:
        with self._lock:
            game = self.current()
            if game is None or (session_id is not None and game.session_id != session_id):
                return False
            self._persist(game)
            return True

    def snapshot(self) -> dict:
        with self._lock:
            game = self.current()
            if game is None:
                return {
                    'kind': None,
                    'session_id': None,
                    'active': False,
                    'channel': None,
                    'players': [],
                    'scores': {},
                    'host': None,
                    'target': None,
                    'lastActionTimestamp': None,
                    'leaderboard': [],
                }
            return game.snapshot()

    # ---- persistence ----

    def resume(self) -> Optional[Game]:
        """Reload the stored session, if any. A missing or unreadable record means no session."""
        with self._lock:
            if self.current() is not None:
                return self._session
            if self.store is None:
                return None
            stored = self.store.load()
            if stored is None:
                return None
            kind, record = stored
            game_cls = self._kinds.get((kind or '').strip().lower())
            if game_cls is None:
                self.logger.error(f"[session-resume-failed] unknown kind={kind!r}")
                return None
            try:
                game = game_cls.from_record(record, rules=self.rules, clock=self.clock)
            except PersistenceError as exc:
                self.logger.error(f"[session-resume-failed] kind={kind} error={exc}")
                return None
            self._session = game
            self.logger.info(f"[session-resume] kind={kind} session={game.session_id} players={len(game.players)}")
            return game

    def _persist(self, game: Game) -> None:
        if not game.active:
            self._session = None
        if self.store is None:
            return
        if game.active:
            self.store.save(game)
        else:
            self.store.clear()
