from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Request bodies
class BookingCreate(BaseModel):
    room_number: int = Field(ge=0, le=255)
    duration: int = Field(gt=0, le=255, description="Number of days")


class BookingUpdate(BaseModel):
    duration: int = Field(gt=0, le=255, description="Number of days")


class RoomPhotoUpdate(BaseModel):
    photo_url: str = Field(min_length=1)


# Responses
class RoomRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    room_number: int
    availability: bool
    photo_url: Optional[str] = None


class BookingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    room_id: str
    room_number: int
    user_id: str
    date_booked: datetime
    duration: int
    time_out: datetime


class RoomActionResponse(BaseModel):
    room: RoomRead
    booking: Optional[BookingRead] = None
    message: str


class RoomBatchResponse(BaseModel):
    rooms: List[RoomRead]
    message: str


class RoomAvailability(BaseModel):
    room_number: int
    available: bool


class MessageResponse(BaseModel):
    message: str
