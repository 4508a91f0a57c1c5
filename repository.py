from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import col, select

from models import Booking, Room


class RoomRepository:
    """
    Reads and writes rooms and bookings through one async session.

    Write methods return the number of rows the statement touched so the
    service can tell a no-op write apart from a successful one. Nothing is
    committed here; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- Rooms ---

    async def get_rooms(self) -> List[Room]:
        statement = select(Room).order_by(Room.room_number)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_room_by_id(self, room_id: str) -> Optional[Room]:
        statement = (
            select(Room)
            .where(Room.id == room_id)
            .options(selectinload(Room.bookings))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def get_room_by_number(self, room_number: int) -> Optional[Room]:
        statement = select(Room).where(Room.room_number == room_number)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def get_available_rooms(self) -> List[Room]:
        statement = (
            select(Room)
            .where(Room.availability == True)  # noqa: E712
            .order_by(Room.room_number)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_booked_rooms(self) -> List[Room]:
        statement = (
            select(Room)
            .where(Room.availability == False)  # noqa: E712
            .order_by(Room.room_number)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_overdue_rooms(self, now: datetime) -> List[Room]:
        """Occupied rooms whose most recent booking checked out before ``now``."""
        statement = (
            select(Room)
            .where(Room.availability == False)  # noqa: E712
            .options(selectinload(Room.bookings))
            .execution_options(populate_existing=True)
            .order_by(Room.room_number)
        )
        result = await self.session.execute(statement)
        overdue = []
        for room in result.scalars().all():
            latest = room.latest_booking()
            if latest is not None and latest.time_out < now:
                overdue.append(room)
        return overdue

    async def is_room_available(self, room_number: int) -> Optional[bool]:
        room = await self.get_room_by_number(room_number)
        if room is None:
            return None
        return room.availability

    async def add_room(self, room: Room) -> Room:
        self.session.add(room)
        await self.session.flush()
        return room

    async def claim_room(self, room_id: str) -> int:
        # Compare-and-set: only flips a room that is still available.
        statement = (
            update(Room)
            .where(Room.id == room_id, Room.availability == True)  # noqa: E712
            .values(availability=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount

    async def release_room(self, room_id: str) -> int:
        statement = update(Room).where(Room.id == room_id).values(availability=True)
        result = await self.session.execute(statement)
        return result.rowcount

    async def release_rooms(self, room_ids: Sequence[str]) -> int:
        """Mark every still-occupied room in ``room_ids`` available in one statement."""
        if not room_ids:
            return 0
        statement = (
            update(Room)
            .where(col(Room.id).in_(list(room_ids)), Room.availability == False)  # noqa: E712
            .values(availability=True)
        )
        result = await self.session.execute(statement)
        return result.rowcount

    async def set_room_photo(self, room_id: str, photo_url: str) -> int:
        statement = update(Room).where(Room.id == room_id).values(photo_url=photo_url)
        result = await self.session.execute(statement)
        return result.rowcount

    # --- Bookings ---

    async def get_bookings_for_room(self, room_id: str) -> List[Booking]:
        statement = (
            select(Booking)
            .where(Booking.room_id == room_id)
            .order_by(Booking.date_booked)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_latest_booking_for_room_number(self, room_number: int) -> Optional[Booking]:
        statement = (
            select(Booking)
            .where(Booking.room_number == room_number)
            .order_by(col(Booking.date_booked).desc())
            .limit(1)
        )
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def add_booking(self, booking: Booking) -> Booking:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def set_booking_duration(self, booking_id: str, duration: int, time_out: datetime) -> int:
        statement = (
            update(Booking)
            .where(Booking.id == booking_id)
            .values(duration=duration, time_out=time_out)
        )
        result = await self.session.execute(statement)
        return result.rowcount

    async def delete_booking(self, booking_id: str) -> int:
        statement = delete(Booking).where(Booking.id == booking_id)
        result = await self.session.execute(statement)
        return result.rowcount

    # --- Transaction ---

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
