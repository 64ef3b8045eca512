"""Typed errors reported back to the requesting participant.

Every error is local to one request: the socket layer converts it into an
``error`` event for the sender and the session carries on.
"""


class ShipGameError(Exception):
    """Base class for all recoverable game errors."""
    code = 'ShipGameError'
    default_message = 'Operation not allowed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


# ============ Validation ============

class MissingField(ShipGameError):
    code = 'MissingField'

    def __init__(self, field):
        self.field = field
        super().__init__(f"Field '{field}' is required")


class InvalidSystem(ShipGameError):
    code = 'InvalidSystem'

    def __init__(self, system):
        self.system = system
        super().__init__(f"Unknown ship system: {system}")


class InvalidTarget(ShipGameError):
    code = 'InvalidTarget'
    default_message = 'Invalid vote target'


class InvalidAction(ShipGameError):
    code = 'InvalidAction'

    def __init__(self, action):
        self.action = action
        super().__init__(f"Unknown secret action: {action}")


# ============ State ============

class GameInProgress(ShipGameError):
    code = 'GameInProgress'
    default_message = 'Game already in progress'


class AlreadyInRoom(ShipGameError):
    code = 'AlreadyInRoom'
    default_message = 'You are already in a room'


class NotEnoughPlayers(ShipGameError):
    code = 'NotEnoughPlayers'

    def __init__(self, minimum):
        self.minimum = minimum
        super().__init__(f"At least {minimum} players are required to start")


# ============ Resource ============

class RoomNotFound(ShipGameError):
    code = 'RoomNotFound'

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class RoomFull(ShipGameError):
    code = 'RoomFull'

    def __init__(self, capacity):
        self.capacity = capacity
        super().__init__(f"Room is full (max {capacity} players)")


class DuplicateName(ShipGameError):
    code = 'DuplicateName'

    def __init__(self, name):
        self.name = name
        super().__init__(f"Username '{name}' is already taken in this room")


# ============ Exhaustion ============

class NoUsesLeft(ShipGameError):
    code = 'NoUsesLeft'
    default_message = 'No secret actions left'
