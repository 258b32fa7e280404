from functools import wraps
from typing import Any, Dict, List

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from themind import socketio
from themind.models import ParticipantId, Room, STATUS_PLAYING, TERMINAL_STATUSES, new_participant_id
from themind.services.games import rules
from themind.services.games.exceptions import ActionRejected, GameError, NotHost, RoomNotFound
from themind.services.games.registry import RoomRegistry, normalize_code
from themind.services.games.scheduler import ADVANCE_LEVEL, RESET_LEVEL, schedule_transition


def _action(name: str):
    """Run an inbound action under the registry lock.

    A GameError is reported to the calling connection only; nothing is
    broadcast for a rejected action.
    """
    def decorator(handler):
        @wraps(handler)
        def wrapper(self, data=None):
            payload = data if isinstance(data, dict) else {}
            with self.registry.lock:
                try:
                    handler(self, payload)
                except GameError as exc:
                    current_app.logger.info(f"[rejected] action={name} sid={request.sid} reason={exc.message!r}")
                    emit('error', {'message': exc.message})
        return wrapper
    return decorator


class SessionGateway:
    """Binds Socket.IO connections to participants and fans out room events."""

    def __init__(self, app, registry: RoomRegistry, namespace: str = '/'):
        self.app = app
        self.registry = registry
        self.namespace = namespace
        self.max_name_length = int(app.config.get('MAX_NAME_LENGTH', 20))
        self._sid_to_identity: Dict[str, ParticipantId] = {}

    # ---- connection lifecycle ----

    def on_connect(self, auth=None):
        identity = new_participant_id()
        self._sid_to_identity[request.sid] = identity
        current_app.logger.info(f"[connect] sid={request.sid} identity={identity}")
        with self.registry.lock:
            emit('rooms-list', self._rooms_payload())

    def on_disconnect(self, reason=None):
        identity = self._sid_to_identity.pop(request.sid, None)
        current_app.logger.info(f"[disconnect] sid={request.sid} identity={identity}")
        if identity is None:
            return
        with self.registry.lock:
            room = self.registry.get_room_by_participant(identity)
            if room is not None:
                self._leave(room.code, identity)

    # ---- inbound actions ----

    @_action('create-room')
    def on_create_room(self, payload):
        name = self._player_name(payload)
        identity = self._identity()
        room = self.registry.create_room(identity, name)
        join_room(room.code)
        emit('room-created', {'roomCode': room.code, 'player': room.get_player(identity).to_dict()})
        self._broadcast_rooms()

    @_action('join-room')
    def on_join_room(self, payload):
        code = self._room_code(payload)
        name = self._player_name(payload)
        identity = self._identity()
        room = self.registry.join_room(code, identity, name)
        join_room(room.code)
        emit('room-joined', {'room': room.to_dict()})
        self._emit_room(room.code, 'player-joined', {'player': room.get_player(identity).to_dict()},
                        include_self=False)
        self._broadcast_rooms()

    @_action('start-game')
    def on_start_game(self, payload):
        room = self._require_room(payload)
        if room.host_id != self._identity():
            raise NotHost('Only the host can start the game')
        rules.start_game(room, self.registry.rng)
        current_app.logger.info(f"[game-started] room={room.code} players={len(room.players)}")
        self._emit_room(room.code, 'game-started', {'room': room.to_dict()})
        self._broadcast_rooms()

    @_action('play-card')
    def on_play_card(self, payload):
        room = self._require_room(payload)
        result = rules.play_card(room, self._identity(), self.registry.rng, deferred=True)
        current_app.logger.info(
            f"[card-played] room={room.code} card={result.card} outcome={type(result.outcome).__name__}"
        )
        self._emit_room(room.code, 'card-played', {
            'playerId': result.player_id,
            'card': result.card,
            'room': room.to_dict(),
        })
        self._dispatch_outcome(room, result.outcome)

    @_action('leave-room')
    def on_leave_room(self, payload):
        self._leave(self._room_code(payload), self._identity())

    @_action('request-sync')
    def on_request_sync(self, payload):
        room = self._require_room(payload)
        emit('game-state-sync', {'room': room.to_dict()})

    @_action('get-rooms')
    def on_get_rooms(self, payload):
        emit('rooms-list', self._rooms_payload())

    @_action('restart-game')
    def on_restart_game(self, payload):
        room = self._require_room(payload)
        if room.host_id != self._identity():
            raise NotHost('Only the host can restart the game')
        if room.state.status not in TERMINAL_STATUSES:
            raise ActionRejected('The game is not over yet')
        rules.restart_game(room)
        current_app.logger.info(f"[game-restarted] room={room.code}")
        self._emit_room(room.code, 'game-state-sync', {'room': room.to_dict()})
        self._broadcast_rooms()

    # ---- server-initiated ----

    def on_transition_applied(self, room: Room) -> None:
        self._emit_room(room.code, 'game-state-sync', {'room': room.to_dict()})

    def on_rooms_expired(self, rooms: List[Room]) -> None:
        for room in rooms:
            socketio.close_room(room.code, namespace=self.namespace)
        self._broadcast_rooms()

    # ---- helpers ----

    def _leave(self, code: str, identity: ParticipantId) -> None:
        result = self.registry.leave_room(code, identity)
        leave_room(normalize_code(code))
        if not result.deleted:
            room = result.room
            self._emit_room(room.code, 'player-left', {'playerId': identity}, include_self=False)
            if result.new_host is not None:
                self._emit_room(room.code, 'host-changed', {
                    'newHostId': result.new_host.id,
                    'newHostName': result.new_host.name,
                })
            if result.game_lost:
                self._dispatch_outcome(room, rules.GameLost())
            elif room.state.status == STATUS_PLAYING:
                # The leaver may have taken the last cards of the level with them
                outcome = rules.settle_cleared_level(room, self.registry.rng, deferred=True)
                if outcome is not None:
                    self._dispatch_outcome(room, outcome)
            self._emit_room(room.code, 'game-state-sync', {'room': room.to_dict()})
        self._broadcast_rooms()

    def _dispatch_outcome(self, room: Room, outcome: rules.PlayOutcome) -> None:
        if isinstance(outcome, rules.Continued):
            return
        if isinstance(outcome, rules.LifeLost):
            self._emit_room(room.code, 'life-lost', {'room': room.to_dict(), 'lostCards': list(outcome.lost_cards)})
            schedule_transition(self.app, self.registry, room, RESET_LEVEL, self.on_transition_applied)
        elif isinstance(outcome, rules.LevelComplete):
            self._emit_room(room.code, 'level-complete', {'room': room.to_dict()})
            schedule_transition(self.app, self.registry, room, ADVANCE_LEVEL, self.on_transition_applied)
        elif isinstance(outcome, rules.GameWon):
            self._emit_room(room.code, 'game-over', {'room': room.to_dict(), 'won': True})
        elif isinstance(outcome, rules.GameLost):
            self._emit_room(room.code, 'game-over', {'room': room.to_dict(), 'won': False})
        else:
            raise TypeError(f'unhandled play outcome {outcome!r}')

    def _emit_room(self, code: str, event: str, data: Dict[str, Any], include_self: bool = True) -> None:
        socketio.emit(event, data, to=code, include_self=include_self, namespace=self.namespace)

    def _broadcast_rooms(self) -> None:
        socketio.emit('rooms-list', self._rooms_payload(), namespace=self.namespace)

    def _rooms_payload(self) -> Dict[str, Any]:
        return {'rooms': [s.to_dict() for s in self.registry.list_public_rooms()]}

    def _identity(self) -> ParticipantId:
        identity = self._sid_to_identity.get(request.sid)
        if identity is None:
            raise ActionRejected('Not connected')
        return identity

    def _room_code(self, payload) -> str:
        code = normalize_code(payload.get('roomCode'))
        if not code:
            raise ActionRejected('roomCode is required')
        return code

    def _require_room(self, payload) -> Room:
        room = self.registry.get_room(self._room_code(payload))
        if room is None:
            raise RoomNotFound()
        return room

    def _player_name(self, payload) -> str:
        name = str(payload.get('playerName') or '').strip()
        if not name:
            raise ActionRejected('playerName is required')
        return name[:self.max_name_length]


def register_socketio_handlers(gateway: SessionGateway) -> None:
    """Register Socket.IO event handlers for the gateway's namespace."""
    namespace = gateway.namespace
    socketio.on_event('connect', gateway.on_connect, namespace=namespace)
    socketio.on_event('disconnect', gateway.on_disconnect, namespace=namespace)
    socketio.on_event('create-room', gateway.on_create_room, namespace=namespace)
    socketio.on_event('join-room', gateway.on_join_room, namespace=namespace)
    socketio.on_event('start-game', gateway.on_start_game, namespace=namespace)
    socketio.on_event('play-card', gateway.on_play_card, namespace=namespace)
    socketio.on_event('leave-room', gateway.on_leave_room, namespace=namespace)
    socketio.on_event('request-sync', gateway.on_request_sync, namespace=namespace)
    socketio.on_event('get-rooms', gateway.on_get_rooms, namespace=namespace)
    socketio.on_event('restart-game', gateway.on_restart_game, namespace=namespace)
