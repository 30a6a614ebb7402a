"""Structural errors raised around the rules engine.

Illegal moves are not errors: the engines report them through return
values. These exceptions cover rooms and seats, plus lost updates at the
store boundary, and carry the HTTP status the API answers with.
"""


class GameError(Exception):
    status_code = 400


class LobbyError(GameError):
    pass


class RoomNotFound(LobbyError):
    status_code = 404

    def __init__(self, room_code):
        super().__init__(f"Game {room_code} not found")
        self.room_code = room_code


class RoomFull(LobbyError):
    status_code = 403

    def __init__(self, room_code):
        super().__init__('Game is full')
        self.room_code = room_code


class GameAlreadyStarted(LobbyError):
    status_code = 403

    def __init__(self, room_code):
        super().__init__('Game has already started')
        self.room_code = room_code


class NotHost(LobbyError):
    status_code = 403

    def __init__(self):
        super().__init__('Only the host may start the game')


class RoomCodeExhausted(LobbyError):
    status_code = 503

    def __init__(self, attempts):
        super().__init__(f"Failed to generate unique room code after {attempts} attempts")


class StaleStateError(GameError):
    """The room changed between read and write."""
    status_code = 409

    def __init__(self, room_code, expected_version):
        super().__init__(f"Game {room_code} changed since version {expected_version}; reload and retry")
        self.room_code = room_code
        self.expected_version = expected_version
