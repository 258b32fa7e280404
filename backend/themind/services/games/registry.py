import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from themind.models import (
    Participant,
    ParticipantId,
    Room,
    RoomSummary,
    STATUS_LOST,
    STATUS_PLAYING,
    STATUS_WAITING,
    generate_room_code,
)
from .exceptions import ActionRejected, GameAlreadyStarted, RoomFull, RoomNotFound
from .rules import CARD_MAX, MAX_LEVEL, MIN_PLAYERS

DEFAULT_ROOM_EXPIRY_SEC = 6 * 60 * 60
DEFAULT_MAX_PLAYERS = 4


def normalize_code(raw) -> str:
    return str(raw or '').strip().upper()


@dataclass
class LeaveResult:
    room: Optional[Room]
    deleted: bool
    new_host: Optional[Participant] = None
    game_lost: bool = False


class RoomRegistry:
    """In-memory store of live rooms and the participant -> room index.

    Holds no transport state. Callers serialize access through `lock`
    so a mutation and the broadcast that follows it are never interleaved
    with another action.
    """

    def __init__(self, expiry_sec: int = DEFAULT_ROOM_EXPIRY_SEC, max_players: int = DEFAULT_MAX_PLAYERS,
                 rng=None, clock=time.time, logger=None):
        self._rooms: Dict[str, Room] = {}
        self._player_rooms: Dict[ParticipantId, str] = {}
        self.expiry_sec = expiry_sec
        # A full table at the last level must still fit in the deck
        self.max_players = max(MIN_PLAYERS, min(max_players, CARD_MAX // MAX_LEVEL))
        self.rng = rng or random.Random()
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._rooms)

    def create_room(self, host_id: ParticipantId, host_name: str) -> Room:
        if host_id in self._player_rooms:
            raise ActionRejected('Leave your current room first')
        code = generate_room_code(self._rooms, rng=self.rng)
        host = Participant(id=host_id, name=host_name, is_host=True)
        room = Room(code=code, host_id=host_id, created_at=self.clock(), players=[host])
        self._rooms[code] = room
        self._player_rooms[host_id] = code
        self.logger.info(f"[room-created] code={code} host={host_name!r}")
        return room

    def join_room(self, code: str, player_id: ParticipantId, name: str) -> Room:
        room = self._rooms.get(normalize_code(code))
        if room is None:
            raise RoomNotFound()
        if room.state.status != STATUS_WAITING:
            raise GameAlreadyStarted()
        if len(room.players) >= self.max_players:
            raise RoomFull(f'Room is full ({self.max_players} players max)')
        if player_id in self._player_rooms:
            raise ActionRejected('Leave your current room first')

        room.players.append(Participant(id=player_id, name=name))
        self._player_rooms[player_id] = room.code
        self.logger.info(f"[room-joined] code={room.code} player={name!r} count={len(room.players)}")
        return room

    def leave_room(self, code: str, player_id: ParticipantId) -> LeaveResult:
        room = self._rooms.get(normalize_code(code))
        if room is None or room.get_player(player_id) is None:
            raise ActionRejected('You are not in this room')

        self._player_rooms.pop(player_id, None)
        room.players = [p for p in room.players if p.id != player_id]

        if not room.players:
            del self._rooms[room.code]
            self.logger.info(f"[room-deleted] code={room.code} reason=empty")
            return LeaveResult(room=None, deleted=True)

        new_host = None
        if room.host_id == player_id:
            new_host = room.players[0]
            new_host.is_host = True
            room.host_id = new_host.id
            self.logger.info(f"[host-changed] code={room.code} host={new_host.name!r}")

        game_lost = False
        if room.state.status == STATUS_PLAYING and len(room.players) < MIN_PLAYERS:
            room.state.status = STATUS_LOST
            room.state.is_locked = False
            room.bump_epoch()
            game_lost = True
            self.logger.info(f"[game-lost] code={room.code} reason=not-enough-players")

        return LeaveResult(room=room, deleted=False, new_host=new_host, game_lost=game_lost)

    def get_room(self, code) -> Optional[Room]:
        return self._rooms.get(normalize_code(code))

    def get_room_by_participant(self, player_id) -> Optional[Room]:
        code = self._player_rooms.get(player_id)
        if code is None:
            return None
        return self._rooms.get(code)

    def list_public_rooms(self) -> List[RoomSummary]:
        return [room.summary() for room in self._rooms.values() if room.state.status == STATUS_WAITING]

    def sweep_expired(self, now: Optional[float] = None) -> List[Room]:
        """Delete rooms older than the expiry window and return them."""
        now = self.clock() if now is None else now
        expired = [room for room in self._rooms.values() if now - room.created_at >= self.expiry_sec]
        for room in expired:
            for p in room.players:
                self._player_rooms.pop(p.id, None)
            del self._rooms[room.code]
            room.bump_epoch()
            age_min = round((now - room.created_at) / 60)
            self.logger.info(f"[room-expired] code={room.code} age={age_min}min")
        if expired:
            self.logger.info(f"[sweep] removed {len(expired)} expired room(s)")
        return expired
