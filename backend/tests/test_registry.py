import threading

import pytest

from conftest import FakeStore
from playgame.services.games.base import Game
from playgame.services.games.errors import (
    ActorNotIt,
    AlreadyInProgress,
    AlreadyJoined,
    CooldownActive,
    GameError,
    NoSessionInProgress,
    UnknownGameKind,
)
from playgame.services.games.registry import GameRegistry
from playgame.services.games.scoring import INTERVAL, MESSAGE
from playgame.services.games.tag import TagGame


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def reg(store, clock):
    r = GameRegistry(store=store, clock=clock)
    r.register(TagGame)
    return r


def test_create_session_persists(reg, store):
    game = reg.create_session('Tag', 'A', channel='C1')
    assert game.kind == 'tag'
    assert reg.current() is game
    assert store.stored == ('tag', game.to_record())


def test_second_start_rejected_and_state_unchanged(reg):
    reg.create_session('tag', 'A')
    reg.join('B')
    before = reg.snapshot()
    with pytest.raises(AlreadyInProgress):
        reg.create_session('tag', 'C')
    # an unknown kind still reports the running game first
    with pytest.raises(AlreadyInProgress):
        reg.create_session('chess', 'C')
    assert reg.snapshot() == before


@pytest.mark.parametrize('kind', ['', None, 'chess'])
def test_unknown_kind(reg, kind):
    with pytest.raises(UnknownGameKind) as exc_info:
        reg.create_session(kind, 'A')
    assert exc_info.value.available == ['tag']
    assert reg.current() is None


def test_register_requires_kind():
    with pytest.raises(ValueError):
        GameRegistry().register(Game)


def test_rejected_operation_is_not_persisted(reg, store):
    reg.create_session('tag', 'A')
    saves = len(store.saved)
    with pytest.raises(AlreadyJoined):
        reg.join('A')
    assert len(store.saved) == saves


def test_operations_without_session(reg):
    with pytest.raises(NoSessionInProgress):
        reg.join('A')
    with pytest.raises(NoSessionInProgress):
        reg.leave('A')
    with pytest.raises(NoSessionInProgress):
        reg.tag('A', 'B')
    with pytest.raises(NoSessionInProgress):
        reg.stop('A')
    assert reg.tick(MESSAGE) is False
    assert reg.autosave() is False
    assert reg.snapshot()['active'] is False
    assert reg.snapshot()['scores'] == {}


def test_stop_clears_store_and_allows_new_session(reg, store):
    reg.create_session('tag', 'A')
    reg.stop('A')
    assert reg.current() is None
    assert store.cleared == 1
    assert store.stored is None
    game = reg.create_session('tag', 'B')
    assert game.host == 'B'


def test_last_leave_tears_down(reg, store):
    reg.create_session('tag', 'A')
    reg.leave('A')
    assert reg.current() is None
    assert store.cleared == 1
    with pytest.raises(NoSessionInProgress):
        reg.join('B')


def test_tick_ignores_stale_session_id(reg):
    old = reg.create_session('tag', 'A')
    reg.stop('A')
    reg.create_session('tag', 'B')
    reg.join('C')
    assert reg.tick(INTERVAL, session_id=old.session_id) is False
    assert reg.snapshot()['scores'] == {'B': 0, 'C': 0}
    assert reg.tick(MESSAGE) is True
    assert reg.snapshot()['scores'] == {'B': 0, 'C': 1}


def test_tag_persists_new_target(reg, store, clock):
    reg.create_session('tag', 'A')
    reg.join('B')
    clock.advance(30)
    result = reg.tag('A', 'B')
    assert result['tagged'] == 'B'
    assert store.stored[1]['target'] == 'B'
    assert store.stored[1]['lastActionTimestamp'] == clock()


def test_resume_round_trip(reg, store, clock):
    reg.create_session('tag', 'A', channel='C1')
    reg.join('B')
    reg.join('C')
    reg.tick(MESSAGE)
    saved = reg.snapshot()

    fresh = GameRegistry(store=store, clock=clock)
    fresh.register(TagGame)
    game = fresh.resume()
    assert game is not None
    assert game.players == saved['players']
    assert game.scores == saved['scores']
    assert game.target == saved['target']
    assert game.host == saved['host']
    assert game.last_action_ms == saved['lastActionTimestamp']


def test_resume_without_record(reg):
    assert reg.resume() is None


def test_resume_skips_unreadable_records(reg, store):
    store.stored = ('chess', {'players': ['A']})
    assert reg.resume() is None
    store.stored = ('tag', {'players': ['A'], 'target': 'Z', 'lastActionTimestamp': 0})
    assert reg.resume() is None
    assert reg.current() is None


def test_kind_without_tag_action(clock):
    class QuietGame(Game):
        kind = 'quiet'

    r = GameRegistry(clock=clock)
    r.register(QuietGame)
    r.create_session('quiet', 'A')
    with pytest.raises(GameError):
        r.tag('A', 'B')


def test_concurrent_tags_only_one_wins(reg, clock):
    reg.create_session('tag', 'A')
    reg.join('B')
    reg.join('C')
    clock.advance(30)

    barrier = threading.Barrier(2)
    outcomes = []

    def attempt(candidate):
        barrier.wait()
        try:
            outcomes.append(reg.tag('A', candidate))
        except (ActorNotIt, CooldownActive) as exc:
            outcomes.append(exc)

    threads = [threading.Thread(target=attempt, args=(c,)) for c in ('B', 'C')]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    wins = [o for o in outcomes if isinstance(o, dict)]
    assert len(wins) == 1
    assert reg.current().target == wins[0]['tagged']


def test_leave_reports_previous_host(reg):
    reg.create_session('tag', 'A')
    reg.join('B')
    reg.join('C')
    game, previous_host = reg.leave('C')
    assert previous_host == 'A'
    assert game.host == 'A'
    game, previous_host = reg.leave('A')
    assert previous_host == 'A'
    assert game.host == 'B'
