from typing import Callable, List

from themind import socketio
from themind.models import Room, STATUS_PLAYING
from .registry import RoomRegistry
from .rules import advance_level, reset_level

RESET_LEVEL = 'reset'
ADVANCE_LEVEL = 'advance'

_TRANSITIONS = {
    RESET_LEVEL: reset_level,
    ADVANCE_LEVEL: advance_level,
}


def schedule_transition(app, registry: RoomRegistry, room: Room, kind: str,
                        on_applied: Callable[[Room], None]) -> None:
    """Re-deal `room` after the presentation pause.

    - Captures the room's epoch now; the re-deal only happens if nothing
      has touched the room since (restart, deletion, another transition)
    - Runs inline in TESTING mode or when the delay is 0
    - `on_applied` is called with the registry lock held, right after the
      re-deal, so the broadcast lands before any later action
    """
    if kind not in _TRANSITIONS:
        raise ValueError(f'unknown transition {kind!r}')
    delay = float(app.config.get('TRANSITION_DELAY_SEC', 1.5))
    code, epoch = room.code, room.epoch
    app.logger.info(f"[timer-set] room={code} kind={kind} epoch={epoch} delay={delay}s")

    def _worker():
        if delay > 0:
            socketio.sleep(delay)
        with app.app_context():
            apply_transition(app, registry, room, kind, epoch, on_applied)

    if app.config.get('TESTING') or delay <= 0:
        _worker()
    else:
        socketio.start_background_task(_worker)


def apply_transition(app, registry: RoomRegistry, room: Room, kind: str, epoch: int,
                     on_applied: Callable[[Room], None]) -> bool:
    """Apply a deferred re-deal if the room is still in the state it was scheduled for."""
    with registry.lock:
        live = registry.get_room(room.code)
        if (live is not room or room.epoch != epoch
                or room.state.status != STATUS_PLAYING or not room.state.is_locked):
            app.logger.info(
                f"[timer-abort] room={room.code} kind={kind} expected_epoch={epoch} actual_epoch={room.epoch}"
            )
            return False
        _TRANSITIONS[kind](room, registry.rng)
        app.logger.info(f"[timer-fire] room={room.code} kind={kind} level={room.state.level}")
        on_applied(room)
        return True


def sweep_rooms(registry: RoomRegistry, on_expired: Callable[[List[Room]], None]) -> List[Room]:
    with registry.lock:
        expired = registry.sweep_expired()
        if expired:
            on_expired(expired)
    return expired


class RoomSweeper:
    """Background loop that drops rooms past their expiry window.

    A failing pass is logged and the loop carries on with the next one.
    `stop()` ends the loop after the current sleep.
    """

    def __init__(self, app, registry: RoomRegistry, on_expired: Callable[[List[Room]], None],
                 interval: float):
        self.app = app
        self.registry = registry
        self.on_expired = on_expired
        self.interval = interval
        self.task = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.app.logger.info(f"[sweeper-start] interval={self.interval}s expiry={self.registry.expiry_sec}s")
        self.task = socketio.start_background_task(self._loop)

    def stop(self) -> None:
        if self._running:
            self._running = False
            self.app.logger.info("[sweeper-stop]")

    def run_once(self) -> List[Room]:
        try:
            with self.app.app_context():
                return sweep_rooms(self.registry, self.on_expired)
        except Exception:
            self.app.logger.exception("[sweep-error] room sweep failed, retrying next pass")
            return []

    def _loop(self):
        while self._running:
            socketio.sleep(self.interval)
            if not self._running:
                break
            self.run_once()


def start_room_sweeper(app, registry: RoomRegistry, on_expired: Callable[[List[Room]], None]) -> RoomSweeper:
    """Build the app's sweeper and start it, except in TESTING mode."""
    interval = float(app.config.get('ROOM_SWEEP_INTERVAL_SEC', 30 * 60))
    sweeper = RoomSweeper(app, registry, on_expired, interval)
    if not app.config.get('TESTING'):
        sweeper.start()
    return sweeper
