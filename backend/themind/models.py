import random
import uuid
from dataclasses import dataclass, field
from typing import List, NewType, Optional

ParticipantId = NewType('ParticipantId', str)

STATUS_WAITING = 'waiting'
STATUS_PLAYING = 'playing'
STATUS_WON = 'won'
STATUS_LOST = 'lost'
TERMINAL_STATUSES = (STATUS_WON, STATUS_LOST)

# No 0/O or 1/I so codes can be read aloud and typed
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 4


def new_participant_id() -> ParticipantId:
    return ParticipantId(uuid.uuid4().hex)


def generate_room_code(taken, rng=None, length=ROOM_CODE_LENGTH):
    """Generate a short room code not present in `taken`."""
    rng = rng or random
    while True:
        code = ''.join(rng.choices(ROOM_CODE_ALPHABET, k=length))
        if code not in taken:
            return code


@dataclass
class Participant:
    id: ParticipantId
    name: str
    cards: List[int] = field(default_factory=list)
    is_host: bool = False
    fails: int = 0

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'cards': list(self.cards),
            'isHost': self.is_host,
            'fails': self.fails,
        }


@dataclass
class GameState:
    status: str = STATUS_WAITING
    level: int = 1
    played_cards: List[int] = field(default_factory=list)
    current_card: Optional[int] = None
    is_locked: bool = False

    def clear_pile(self) -> None:
        self.played_cards = []
        self.current_card = None

    def to_dict(self):
        return {
            'status': self.status,
            'level': self.level,
            'playedCards': list(self.played_cards),
            'currentCard': self.current_card,
            'isLocked': self.is_locked,
        }


@dataclass
class RoomSummary:
    code: str
    host_name: str
    player_count: int
    status: str

    def to_dict(self):
        return {
            'code': self.code,
            'hostName': self.host_name,
            'playerCount': self.player_count,
            'status': self.status,
        }


@dataclass
class Room:
    code: str
    host_id: ParticipantId
    created_at: float
    players: List[Participant] = field(default_factory=list)
    state: GameState = field(default_factory=GameState)
    # Bumped on every transition that invalidates pending deferred work
    epoch: int = 0

    def get_player(self, player_id) -> Optional[Participant]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    @property
    def host(self) -> Optional[Participant]:
        return self.get_player(self.host_id)

    @property
    def cards_remaining(self) -> int:
        return sum(len(p.cards) for p in self.players)

    def bump_epoch(self) -> int:
        self.epoch += 1
        return self.epoch

    def summary(self) -> RoomSummary:
        host = self.host
        return RoomSummary(
            code=self.code,
            host_name=host.name if host else 'Unknown',
            player_count=len(self.players),
            status=self.state.status,
        )

    def to_dict(self):
        return {
            'code': self.code,
            'hostId': self.host_id,
            'createdAt': self.created_at,
            'players': [p.to_dict() for p in self.players],
            'state': self.state.to_dict(),
        }
