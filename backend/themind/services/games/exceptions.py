class GameError(Exception):
    """Base class for rejected actions.

    Raised by the registry and rules engine while validating an action,
    before anything has been mutated. The message is shown to the player
    who attempted the action.
    """

    default_message = 'Action rejected'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RoomNotFound(GameError):
    default_message = 'Room not found'


class GameAlreadyStarted(GameError):
    default_message = 'Game already started'


class RoomFull(GameError):
    default_message = 'Room is full'


class NotHost(GameError):
    default_message = 'Only the host can do that'


class NotEnoughPlayers(GameError):
    default_message = 'Need at least 2 players to start'


class InvalidPlay(GameError):
    default_message = 'Cannot play card'


class ActionRejected(GameError):
    pass
