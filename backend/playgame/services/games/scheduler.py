from typing import Callable

from playgame import socketio
from playgame.socketio_events import broadcast_state
from .scoring import INTERVAL


def schedule_session_timers(app, registry, session_id: str) -> None:
    """Start the autosave and interval-score timers for one session.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - One timer per (session_id, name), tracked in registry.timer_keys
    - Each timer exits on its first wake-up after the session is gone
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    _schedule(app, registry, session_id, 'autosave', int(app.config.get('AUTOSAVE_INTERVAL_SEC', 30)), registry.autosave)

    def _score_tick(sid: str) -> bool:
        if not registry.tick(INTERVAL, session_id=sid):
            return False
        broadcast_state(registry)
        return True

    _schedule(app, registry, session_id, 'score_tick', int(app.config.get('SCORE_TICK_INTERVAL_SEC', 60)), _score_tick)


def _schedule(app, registry, session_id: str, name: str, period: int, action: Callable[[str], bool]) -> None:
    if period <= 0:
        app.logger.info(f"[timer-disabled] session={session_id} timer={name}")
        return
    key = (session_id, name)
    if key in registry.timer_keys:
        app.logger.info(f"[timer-skip] session={session_id} timer={name} already scheduled")
        return
    registry.timer_keys.add(key)
    app.logger.info(f"[timer-set] session={session_id} timer={name} period={period}s")

    def _worker():
        try:
            while True:
                _sleep(app, session_id, name, period)
                with app.app_context():
                    if not action(session_id):
                        app.logger.info(f"[timer-abort] session={session_id} timer={name} session no longer active")
                        return
                    app.logger.debug(f"[timer-fire] session={session_id} timer={name}")
        except Exception:
            app.logger.exception(f"[timer-crash] session={session_id} timer={name}")
        finally:
            registry.timer_keys.discard(key)

    socketio.start_background_task(_worker)


def _sleep(app, session_id: str, name: str, delay: int) -> None:
    # heartbeat sleep loop if enabled
    hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0)
    if hb <= 0:
        socketio.sleep(delay)
        return
    slept = 0
    while slept < delay:
        step = min(hb, delay - slept)
        socketio.sleep(step)
        slept += step
        app.logger.info(f"[timer-heartbeat] session={session_id} timer={name} remaining={max(0, delay - slept)}s")
