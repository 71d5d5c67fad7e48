"""Error taxonomy for the arena server.

Every error here is non-fatal: socket handlers turn them into an ``ERROR``
event for the requesting client (or drop the message for protocol errors)
and keep the connection open.
"""


class CarballError(Exception):
    code = 'ERROR'
    message = 'Unexpected error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'msg': self.message, 'code': self.code}


class ProtocolError(CarballError):
    """Malformed inbound message. Never reported to the client."""
    code = 'PROTOCOL_ERROR'
    message = 'Malformed message'


class RoomNotFound(CarballError):
    code = 'ROOM_NOT_FOUND'
    message = 'Room not found'


class RoomFull(CarballError):
    code = 'ROOM_FULL'
    message = 'Room full'


class MatchAlreadyStarted(CarballError):
    code = 'MATCH_ALREADY_STARTED'
    message = 'Match already started'


class RoomCodeExhausted(CarballError):
    code = 'ROOM_CODE_EXHAUSTED'
    message = 'Could not allocate a room code, try again'
