"""
Booking errors

Every precondition the room/booking service checks has its own exception
class. Each one carries a stable error code, a caller-facing message and the
HTTP status the API layer answers with.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes returned to API callers"""
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    NO_ACTIVE_BOOKING = "NO_ACTIVE_BOOKING"

    ROOM_NOT_AVAILABLE = "ROOM_NOT_AVAILABLE"
    ROOM_NOT_BOOKED = "ROOM_NOT_BOOKED"
    ROOM_NOT_OVERDUE = "ROOM_NOT_OVERDUE"
    NO_OVERDUE_ROOMS = "NO_OVERDUE_ROOMS"

    NOT_BOOKING_OWNER = "NOT_BOOKING_OWNER"

    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    INVALID_INPUT = "INVALID_INPUT"


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    UNAUTHORIZED = "Unauthorized"
    PERSISTENCE_FAILURE = "PersistenceFailure"
    INVALID_INPUT = "InvalidInput"


class BookingError(Exception):
    """
    Base class for all room/booking errors.

    Subclasses fix ``kind`` and ``status_code``; instances carry the
    message and any details that help the caller.
    """

    kind: ErrorKind = ErrorKind.PERSISTENCE_FAILURE
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "kind": self.kind.value,
                "details": self.details,
                "type": self.__class__.__name__,
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# Error kinds
# ========================================

class NotFoundError(BookingError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(BookingError):
    kind = ErrorKind.CONFLICT
    status_code = 409


class UnauthorizedError(BookingError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = 401


class PersistenceFailure(BookingError):
    """Raised when a commit fails or a write touches no rows"""

    kind = ErrorKind.PERSISTENCE_FAILURE
    status_code = 500

    def __init__(self, message: str = "Something went wrong", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.PERSISTENCE_FAILURE, details)


class InvalidInput(BookingError):
    kind = ErrorKind.INVALID_INPUT
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, ErrorCode.INVALID_INPUT, details)


# ========================================
# Not found
# ========================================

class RoomNotFound(NotFoundError):

    def __init__(self, room_id: Optional[str] = None, room_number: Optional[int] = None):
        details: Dict[str, Any] = {}
        if room_id is not None:
            details["room_id"] = room_id
        if room_number is not None:
            details["room_number"] = room_number
        super().__init__("Requested room does not exist", ErrorCode.ROOM_NOT_FOUND, details)


class BookingNotFound(NotFoundError):

    def __init__(self, room_number: int):
        super().__init__(
            f"Room {room_number} has not been booked",
            ErrorCode.BOOKING_NOT_FOUND,
            {"room_number": room_number},
        )


class NoActiveBooking(NotFoundError):
    """The room is occupied but has no booking record to act on"""

    def __init__(self, room_number: int):
        super().__init__(
            f"Room {room_number} has no booking to update",
            ErrorCode.NO_ACTIVE_BOOKING,
            {"room_number": room_number},
        )


# ========================================
# Conflicts
# ========================================

class RoomNotAvailable(ConflictError):

    def __init__(self, room_number: int):
        super().__init__(
            "Requested room is not available for booking. Please try booking other rooms",
            ErrorCode.ROOM_NOT_AVAILABLE,
            {"room_number": room_number},
        )


class RoomNotBooked(ConflictError):

    def __init__(self, room_number: int):
        super().__init__(
            "Requested room is not yet booked",
            ErrorCode.ROOM_NOT_BOOKED,
            {"room_number": room_number},
        )


class RoomNotOverdue(ConflictError):

    def __init__(self, room_number: int):
        super().__init__(
            f"Room {room_number} is not yet overdue",
            ErrorCode.ROOM_NOT_OVERDUE,
            {"room_number": room_number},
        )


class NoOverdueRooms(ConflictError):

    def __init__(self):
        super().__init__("No room is overdue", ErrorCode.NO_OVERDUE_ROOMS)


# ========================================
# Ownership
# ========================================

class NotBookingOwner(UnauthorizedError):

    def __init__(self, actor_id: str, room_number: int):
        super().__init__(
            f"The booking of room {room_number} belongs to another user",
            ErrorCode.NOT_BOOKING_OWNER,
            {"actor_id": actor_id, "room_number": room_number},
        )
