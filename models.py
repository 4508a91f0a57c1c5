import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field, Relationship


def new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp.

    Only aware datetimes are accepted on write. Values read back are always
    aware UTC, including from backends such as SQLite that drop the offset.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Booking timestamps must be timezone-aware")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    id: str = Field(default_factory=new_id, primary_key=True)
    room_number: int = Field(index=True, unique=True)  # 0..255
    # True = bookable, False = occupied
    availability: bool = Field(default=True, index=True)
    photo_url: Optional[str] = None

    bookings: List["Booking"] = Relationship(
        back_populates="room",
        sa_relationship_kwargs={"order_by": "Booking.date_booked"},
    )

    def latest_booking(self) -> Optional["Booking"]:
        """Booking with the latest ``date_booked``. ``bookings`` must be loaded."""
        if not self.bookings:
            return None
        return max(self.bookings, key=lambda booking: booking.date_booked)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    id: str = Field(default_factory=new_id, primary_key=True)
    date_booked: datetime = Field(sa_column=Column(UTCDateTime, nullable=False, index=True))
    duration: int  # whole days, 1..255
    time_out: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))
    # Copy of the room's number when the booking was made
    room_number: int = Field(index=True)

    user_id: str = Field(index=True)
    room_id: str = Field(foreign_key="rooms.id", index=True)

    room: Optional[Room] = Relationship(back_populates="bookings")
