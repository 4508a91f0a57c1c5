import asyncio
import logging
from contextlib import suppress
from typing import List

from fastapi import FastAPI, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth import ALL_ROLES, STAFF_ROLES, User, ensure_self, require_roles
from database import create_hotel_tables, dispose_engine, get_session, hotel_session_factory
from exceptions import BookingError
from repository import RoomRepository
from schemas import (
    BookingCreate,
    BookingRead,
    BookingUpdate,
    MessageResponse,
    RoomActionResponse,
    RoomAvailability,
    RoomBatchResponse,
    RoomPhotoUpdate,
    RoomRead,
)
from services import RoomAction, RoomBookingService
from settings import CORS_ORIGINS, LOG_LEVEL, OVERDUE_SWEEP_INTERVAL_SECONDS, TOTAL_ROOMS
from vacancy import run_vacancy_loop

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Hotel Room Booking API")

any_user = require_roles(*ALL_ROLES)
staff_only = require_roles(*STAFF_ROLES)


def get_booking_service(session: AsyncSession = Depends(get_session)) -> RoomBookingService:
    return RoomBookingService(RoomRepository(session))


def to_action_response(action: RoomAction) -> RoomActionResponse:
    return RoomActionResponse(
        room=RoomRead.model_validate(action.room),
        booking=BookingRead.model_validate(action.booking) if action.booking else None,
        message=action.message,
    )


@app.on_event("startup")
async def on_startup():
    await create_hotel_tables()
    async with hotel_session_factory() as session:
        await RoomBookingService(RoomRepository(session)).seed_rooms(TOTAL_ROOMS)

    if OVERDUE_SWEEP_INTERVAL_SECONDS > 0:
        app.state.vacancy_task = asyncio.create_task(
            run_vacancy_loop(hotel_session_factory, OVERDUE_SWEEP_INTERVAL_SECONDS)
        )


@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "vacancy_task", None)
    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
    await dispose_engine()


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# --- Rooms ---

@app.get("/rooms", response_model=List[RoomRead])
async def get_all_rooms(
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.list_rooms()


@app.get("/rooms/available", response_model=List[RoomRead])
async def get_available_rooms(
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.list_available()


@app.get("/rooms/booked", response_model=List[RoomRead])
async def get_booked_rooms(
    user: User = Depends(staff_only),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.list_booked()


@app.get("/rooms/overdue", response_model=List[RoomRead])
async def get_overdue_rooms(
    user: User = Depends(staff_only),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.list_overdue()


@app.patch("/rooms/reclaim", response_model=RoomBatchResponse)
async def make_all_overdue_rooms_available(
    user: User = Depends(staff_only),
    service: RoomBookingService = Depends(get_booking_service),
):
    result = await service.reclaim_overdue()
    return RoomBatchResponse(
        rooms=[RoomRead.model_validate(room) for room in result.rooms],
        message=result.message,
    )


@app.get("/rooms/number/{room_number}", response_model=RoomRead)
async def get_room_by_room_number(
    room_number: int,
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.get_room_by_number(room_number)


@app.get("/rooms/availability/{room_number}", response_model=RoomAvailability)
async def is_room_available(
    room_number: int,
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    available = await service.is_room_available(room_number)
    return RoomAvailability(room_number=room_number, available=available)


@app.get("/rooms/{room_id}", response_model=RoomRead)
async def get_room_by_id(
    room_id: str,
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.get_room(room_id)


@app.get("/rooms/{room_id}/bookings", response_model=List[BookingRead])
async def get_room_booking_history(
    room_id: str,
    user: User = Depends(staff_only),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.list_bookings(room_id)


@app.patch("/rooms/{room_id}/photo", response_model=RoomRead)
async def update_room_photo(
    room_id: str,
    photo: RoomPhotoUpdate,
    user: User = Depends(staff_only),
    service: RoomBookingService = Depends(get_booking_service),
):
    return await service.update_room_photo(room_id, photo.photo_url)


@app.patch("/rooms/{room_id}/reclaim", response_model=RoomActionResponse)
async def make_overdue_room_available(
    room_id: str,
    user: User = Depends(staff_only),
    service: RoomBookingService = Depends(get_booking_service),
):
    return to_action_response(await service.reclaim_overdue_by_id(room_id))


# --- Bookings ---

@app.post(
    "/users/{user_id}/bookings",
    response_model=RoomActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_room(
    user_id: str,
    booking_data: BookingCreate,
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    ensure_self(user, user_id)
    action = await service.book_room(user.id, booking_data.room_number, booking_data.duration)
    return to_action_response(action)


@app.put("/users/{user_id}/bookings/{room_id}", response_model=RoomActionResponse)
async def update_booking(
    user_id: str,
    room_id: str,
    booking_data: BookingUpdate,
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    ensure_self(user, user_id)
    action = await service.update_booking(user.id, room_id, booking_data.duration)
    return to_action_response(action)


@app.delete("/users/{user_id}/bookings/{room_number}", response_model=MessageResponse)
async def cancel_booking(
    user_id: str,
    room_number: int,
    user: User = Depends(any_user),
    service: RoomBookingService = Depends(get_booking_service),
):
    ensure_self(user, user_id)
    message = await service.cancel_booking(user.id, room_number)
    return MessageResponse(message=message)


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
