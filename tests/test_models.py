from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import StatementError

from models import Booking, Room
from repository import RoomRepository


def make_booking(room: Room, date_booked: datetime) -> Booking:
    return Booking(
        date_booked=date_booked,
        duration=2,
        time_out=date_booked + timedelta(days=2),
        room_number=room.room_number,
        user_id="u1",
        room_id=room.id,
    )


async def test_booking_timestamps_are_read_back_as_utc(session_factory):
    """A booking written with an offset comes back from the database as aware UTC."""
    plus_two = timezone(timedelta(hours=2))
    booked_at = datetime(2024, 3, 1, 14, 0, 0, tzinfo=plus_two)

    async with session_factory() as session:
        room = Room(room_number=1, availability=False)
        session.add(room)
        session.add(make_booking(room, booked_at))
        await session.commit()
        room_id = room.id

    async with session_factory() as session:
        [booking] = await RoomRepository(session).get_bookings_for_room(room_id)

    assert booking.date_booked.tzinfo is not None
    assert booking.date_booked.utcoffset() == timedelta(0)
    assert booking.date_booked == datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert booking.time_out == booking.date_booked + timedelta(days=2)


async def test_naive_booking_timestamps_are_rejected(session_factory):
    async with session_factory() as session:
        room = Room(room_number=1, availability=False)
        session.add(room)
        session.add(make_booking(room, datetime(2024, 3, 1, 12, 0, 0)))

        with pytest.raises(StatementError, match="timezone-aware"):
            await session.commit()
