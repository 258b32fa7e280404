from dataclasses import dataclass, field
from typing import List, Optional, Union

from themind.models import (
    Room,
    STATUS_PLAYING,
    STATUS_WAITING,
    STATUS_WON,
)
from .exceptions import ActionRejected, GameAlreadyStarted, InvalidPlay, NotEnoughPlayers

MIN_PLAYERS = 2
MAX_LEVEL = 12
CARD_MIN = 1
CARD_MAX = 100


@dataclass(frozen=True)
class Continued:
    """The card went on the pile and play goes on."""


@dataclass(frozen=True)
class LifeLost:
    lost_cards: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class LevelComplete:
    level: int


@dataclass(frozen=True)
class GameWon:
    pass


@dataclass(frozen=True)
class GameLost:
    pass


PlayOutcome = Union[Continued, LifeLost, LevelComplete, GameWon, GameLost]


@dataclass(frozen=True)
class PlayResult:
    player_id: str
    card: int
    outcome: PlayOutcome


def start_game(room: Room, rng) -> None:
    if room.state.status != STATUS_WAITING:
        raise GameAlreadyStarted()
    if len(room.players) < MIN_PLAYERS:
        raise NotEnoughPlayers(f'Need at least {MIN_PLAYERS} players to start')
    room.state.status = STATUS_PLAYING
    room.state.level = 1
    room.state.clear_pile()
    room.state.is_locked = False
    for p in room.players:
        p.fails = 0
    room.bump_epoch()
    deal_cards(room, rng)


def deal_cards(room: Room, rng) -> None:
    """Deal `level` cards to every participant.

    The whole deal is drawn without replacement from CARD_MIN..CARD_MAX,
    shuffled, then handed out one at a time in join order, so participant
    i gets shuffle positions i, i+n, i+2n and so on. Hands end up sorted.
    """
    count = len(room.players)
    total = room.state.level * count
    if total > CARD_MAX - CARD_MIN + 1:
        raise ActionRejected(f'Cannot deal {total} cards from a {CARD_MAX}-card deck')
    cards = sorted(rng.sample(range(CARD_MIN, CARD_MAX + 1), total))
    rng.shuffle(cards)
    for index, p in enumerate(room.players):
        p.cards = sorted(cards[index::count])


def play_card(room: Room, player_id, rng, deferred: bool = False) -> PlayResult:
    """Play the lowest card held by `player_id` and resolve the consequences.

    Any other participant holding cards below the played one loses them and
    the actor's fail counter goes up by one. With `deferred` the re-deal is
    not applied here: the room is locked and the caller finishes the
    transition later through reset_level() or advance_level().
    """
    state = room.state
    if state.status != STATUS_PLAYING:
        raise InvalidPlay('Game is not in progress')
    if state.is_locked:
        raise InvalidPlay('Wait for the next deal')
    actor = room.get_player(player_id)
    if actor is None:
        raise InvalidPlay('You are not in this room')
    if not actor.cards:
        raise InvalidPlay('You have no cards left')

    card = actor.cards.pop(0)
    lost_cards = []
    for p in room.players:
        if p is actor:
            continue
        while p.cards and p.cards[0] < card:
            lost_cards.append(p.cards.pop(0))

    state.played_cards.append(card)
    state.current_card = card

    if lost_cards:
        actor.fails += 1
        if deferred:
            _lock(room)
        else:
            reset_level(room, rng)
        return PlayResult(player_id, card, LifeLost(lost_cards))

    outcome = settle_cleared_level(room, rng, deferred=deferred)
    return PlayResult(player_id, card, outcome or Continued())


def settle_cleared_level(room: Room, rng, deferred: bool = False) -> Optional[PlayOutcome]:
    """Finish the level if no participant holds any card, else return None."""
    state = room.state
    if state.status != STATUS_PLAYING or state.is_locked or room.cards_remaining:
        return None
    if state.level >= MAX_LEVEL:
        state.status = STATUS_WON
        room.bump_epoch()
        return GameWon()
    cleared = state.level
    if deferred:
        _lock(room)
    else:
        advance_level(room, rng)
    return LevelComplete(cleared)


def reset_level(room: Room, rng) -> None:
    room.state.clear_pile()
    deal_cards(room, rng)
    room.state.is_locked = False
    room.bump_epoch()


def advance_level(room: Room, rng) -> None:
    if room.state.level < MAX_LEVEL:
        room.state.level += 1
    room.state.clear_pile()
    deal_cards(room, rng)
    room.state.is_locked = False
    room.bump_epoch()


def restart_game(room: Room) -> None:
    room.state.status = STATUS_WAITING
    room.state.level = 1
    room.state.clear_pile()
    room.state.is_locked = False
    for p in room.players:
        p.cards = []
        p.fails = 0
    room.bump_epoch()


def _lock(room: Room) -> None:
    room.state.is_locked = True
    room.bump_epoch()
