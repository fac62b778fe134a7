class RoomError(Exception):
    """Base class for room registry errors."""


class RoomNotFound(RoomError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class RoomExpired(RoomError):
    """Raised after an expired room has been archived on the request path."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} expired")


class InvalidInput(RoomError):
    pass


class ProtectedRoom(RoomError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} cannot be deleted")


class UpstreamError(Exception):
    """An external collaborator (user service, games feed) failed."""

    def __init__(self, message: str, status_code=None):
        self.status_code = status_code
        super().__init__(message)
