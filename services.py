import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from exceptions import (
    BookingNotFound,
    InvalidInput,
    NoActiveBooking,
    NoOverdueRooms,
    NotBookingOwner,
    PersistenceFailure,
    RoomNotAvailable,
    RoomNotBooked,
    RoomNotFound,
    RoomNotOverdue,
)
from models import Booking, Room
from repository import RoomRepository

logger = logging.getLogger(__name__)

MAX_DURATION_DAYS = 255
MAX_ROOM_NUMBER = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RoomAction:
    room: Room
    message: str
    booking: Optional[Booking] = None


@dataclass
class RoomBatchAction:
    rooms: List[Room]
    message: str


class RoomBookingService:
    """
    Owns the room/booking lifecycle: book, update, cancel and reclaim.

    The service trusts ``actor_id``: the caller's identity and role have
    already been checked at the boundary. Each mutating operation runs in a
    single transaction on the repository's session and either commits every
    write or rolls all of them back.
    """

    def __init__(self, repository: RoomRepository, clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.clock = clock

    @asynccontextmanager
    async def _transaction(self, operation: str):
        try:
            yield
            await self.repository.commit()
        except SQLAlchemyError as exc:
            await self.repository.rollback()
            logger.exception("%s failed while writing to the database", operation)
            raise PersistenceFailure(details={"operation": operation}) from exc
        except Exception:
            await self.repository.rollback()
            raise

    # --- Queries ---

    async def list_rooms(self) -> List[Room]:
        return await self.repository.get_rooms()

    async def get_room(self, room_id: str) -> Room:
        room = await self.repository.get_room_by_id(room_id)
        if room is None:
            raise RoomNotFound(room_id=room_id)
        return room

    async def get_room_by_number(self, room_number: int) -> Room:
        room = await self.repository.get_room_by_number(room_number)
        if room is None:
            raise RoomNotFound(room_number=room_number)
        return room

    async def list_available(self) -> List[Room]:
        return await self.repository.get_available_rooms()

    async def list_booked(self) -> List[Room]:
        return await self.repository.get_booked_rooms()

    async def list_overdue(self) -> List[Room]:
        return await self.repository.get_overdue_rooms(self.clock())

    async def is_room_available(self, room_number: int) -> bool:
        available = await self.repository.is_room_available(room_number)
        if available is None:
            raise RoomNotFound(room_number=room_number)
        return available

    async def list_bookings(self, room_id: str) -> List[Booking]:
        await self.get_room(room_id)
        return await self.repository.get_bookings_for_room(room_id)

    # --- Transitions ---

    async def book_room(self, actor_id: str, room_number: int, duration: int) -> RoomAction:
        _check_room_number(room_number)
        _check_duration(duration)

        async with self._transaction("book_room"):
            room = await self.repository.get_room_by_number(room_number)
            if room is None:
                raise RoomNotFound(room_number=room_number)

            # Re-query the available set rather than trusting the loaded flag
            available_ids = {r.id for r in await self.repository.get_available_rooms()}
            if room.id not in available_ids:
                raise RoomNotAvailable(room_number)

            if await self.repository.claim_room(room.id) == 0:
                # Another writer took the room between the check and the update
                raise RoomNotAvailable(room_number)

            now = self.clock()
            booking = await self.repository.add_booking(Booking(
                date_booked=now,
                duration=duration,
                time_out=now + timedelta(days=duration),
                room_number=room.room_number,
                user_id=actor_id,
                room_id=room.id,
            ))

        logger.info("Room %s booked by %s for %s day(s)", room_number, actor_id, duration)
        return RoomAction(
            room=room,
            booking=booking,
            message=f"You have successfully booked room {room.room_number}",
        )

    async def update_booking(self, actor_id: str, room_id: str, duration: int) -> RoomAction:
        _check_duration(duration)

        async with self._transaction("update_booking"):
            room = await self.repository.get_room_by_id(room_id)
            if room is None:
                raise RoomNotFound(room_id=room_id)
            if room.availability:
                raise RoomNotBooked(room.room_number)

            booking = room.latest_booking()
            if booking is None:
                raise NoActiveBooking(room.room_number)
            if booking.user_id != actor_id:
                raise NotBookingOwner(actor_id, room.room_number)

            time_out = booking.date_booked + timedelta(days=duration)
            if await self.repository.set_booking_duration(booking.id, duration, time_out) == 0:
                raise PersistenceFailure(details={"operation": "update_booking"})

        logger.info("Booking %s of room %s extended to %s day(s)", booking.id, room.room_number, duration)
        return RoomAction(
            room=room,
            booking=booking,
            message=f"You have successfully updated the booking of room {room.room_number}",
        )

    async def cancel_booking(self, actor_id: str, room_number: int) -> str:
        _check_room_number(room_number)

        async with self._transaction("cancel_booking"):
            booking = await self.repository.get_latest_booking_for_room_number(room_number)
            if booking is None:
                raise BookingNotFound(room_number)
            if booking.user_id != actor_id:
                raise NotBookingOwner(actor_id, room_number)

            booking_id, room_id = booking.id, booking.room_id
            deleted = await self.repository.delete_booking(booking_id)
            released = await self.repository.release_room(room_id)
            if deleted == 0 or released == 0:
                raise PersistenceFailure(details={"operation": "cancel_booking"})

        logger.info("Booking of room %s cancelled by %s", room_number, actor_id)
        return f"You have successfully unbooked room {room_number}"

    async def reclaim_overdue(self) -> RoomBatchAction:
        async with self._transaction("reclaim_overdue"):
            overdue = await self.repository.get_overdue_rooms(self.clock())
            if not overdue:
                raise NoOverdueRooms()

            if await self.repository.release_rooms([room.id for room in overdue]) == 0:
                raise PersistenceFailure(details={"operation": "reclaim_overdue"})

        logger.info("Reclaimed %d overdue room(s): %s",
                    len(overdue), ", ".join(str(room.room_number) for room in overdue))
        return RoomBatchAction(rooms=overdue, message="All rooms are now available")

    async def reclaim_overdue_by_id(self, room_id: str) -> RoomAction:
        async with self._transaction("reclaim_overdue_by_id"):
            overdue = await self.repository.get_overdue_rooms(self.clock())
            if not overdue:
                raise NoOverdueRooms()

            room = await self.repository.get_room_by_id(room_id)
            if room is None:
                raise RoomNotFound(room_id=room_id)
            if room.id not in {r.id for r in overdue}:
                raise RoomNotOverdue(room.room_number)

            if await self.repository.release_rooms([room.id]) == 0:
                raise PersistenceFailure(details={"operation": "reclaim_overdue_by_id"})

        logger.info("Reclaimed overdue room %s", room.room_number)
        return RoomAction(room=room, message=f"room {room.room_number} is now available for booking")

    async def update_room_photo(self, room_id: str, photo_url: str) -> Room:
        async with self._transaction("update_room_photo"):
            room = await self.repository.get_room_by_id(room_id)
            if room is None:
                raise RoomNotFound(room_id=room_id)
            if await self.repository.set_room_photo(room.id, photo_url) == 0:
                raise PersistenceFailure(details={"operation": "update_room_photo"})
        return room

    async def seed_rooms(self, total: int) -> List[Room]:
        """Create rooms 1..total that don't exist yet. Returns the new rooms."""
        created = []
        async with self._transaction("seed_rooms"):
            existing = {room.room_number for room in await self.repository.get_rooms()}
            for number in range(1, min(total, MAX_ROOM_NUMBER) + 1):
                if number not in existing:
                    created.append(await self.repository.add_room(Room(room_number=number, availability=True)))
        if created:
            logger.info("Seeded %d room(s)", len(created))
        return created


def _check_duration(duration: int):
    if not 1 <= duration <= MAX_DURATION_DAYS:
        raise InvalidInput(f"Duration must be between 1 and {MAX_DURATION_DAYS} days", field="duration")


def _check_room_number(room_number: int):
    if not 0 <= room_number <= MAX_ROOM_NUMBER:
        raise InvalidInput(f"Room number must be between 0 and {MAX_ROOM_NUMBER}", field="room_number")
