import asyncio
from datetime import timedelta

import pytest

import vacancy
from exceptions import PersistenceFailure
from models import Booking, Room
from repository import RoomRepository
from services import utcnow


async def add_overdue_room(session_factory, room_number: int) -> str:
    async with session_factory() as session:
        room = Room(room_number=room_number, availability=False)
        session.add(room)
        checked_in = utcnow() - timedelta(days=3)
        session.add(Booking(
            date_booked=checked_in,
            duration=1,
            time_out=checked_in + timedelta(days=1),
            room_number=room_number,
            user_id="u1",
            room_id=room.id,
        ))
        await session.commit()
        return room.id


async def test_sweep_makes_overdue_rooms_vacant(session_factory):
    room_id = await add_overdue_room(session_factory, 7)

    reclaimed = await vacancy.make_overdue_rooms_vacant(session_factory)

    assert [room.room_number for room in reclaimed] == [7]
    async with session_factory() as session:
        repository = RoomRepository(session)
        assert (await repository.get_room_by_number(7)).availability is True
        assert len(await repository.get_bookings_for_room(room_id)) == 1


async def test_sweep_with_nothing_overdue_is_quiet(session_factory):
    await add_overdue_room(session_factory, 7)
    await vacancy.make_overdue_rooms_vacant(session_factory)

    assert await vacancy.make_overdue_rooms_vacant(session_factory) == []


async def test_vacancy_loop_keeps_running_after_a_failed_sweep(monkeypatch):
    calls = []

    async def fake_sweep(session_factory):
        calls.append(session_factory)
        if len(calls) == 1:
            raise PersistenceFailure()
        raise asyncio.CancelledError()

    monkeypatch.setattr(vacancy, "make_overdue_rooms_vacant", fake_sweep)

    with pytest.raises(asyncio.CancelledError):
        await vacancy.run_vacancy_loop("factory", 0)

    assert calls == ["factory", "factory"]


async def test_vacancy_loop_survives_a_database_outage(monkeypatch, caplog):
    calls = []

    async def flaky_sweep(session_factory):
        calls.append(session_factory)
        if len(calls) == 1:
            raise ConnectionRefusedError("database down")
        raise asyncio.CancelledError()

    monkeypatch.setattr(vacancy, "make_overdue_rooms_vacant", flaky_sweep)

    with pytest.raises(asyncio.CancelledError):
        await vacancy.run_vacancy_loop("factory", 0)

    assert calls == ["factory", "factory"]
    assert "Vacancy sweep failed" in caplog.text
