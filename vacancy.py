import asyncio
import logging
from typing import Callable, List

from sqlalchemy.ext.asyncio import AsyncSession

from exceptions import NoOverdueRooms
from models import Room
from repository import RoomRepository
from services import RoomBookingService

logger = logging.getLogger(__name__)


async def make_overdue_rooms_vacant(session_factory: Callable[[], AsyncSession]) -> List[Room]:
    """Run one reclaim pass in a fresh session. Returns the rooms made available."""
    async with session_factory() as session:
        service = RoomBookingService(RoomRepository(session))
        try:
            result = await service.reclaim_overdue()
        except NoOverdueRooms:
            logger.debug("Vacancy sweep: no overdue rooms")
            return []
    return result.rooms


async def run_vacancy_loop(session_factory: Callable[[], AsyncSession], interval_seconds: int):
    logger.info("Overdue room sweeper started (every %ss)", interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await make_overdue_rooms_vacant(session_factory)
        except Exception:
            logger.exception("Vacancy sweep failed, next attempt in %ss", interval_seconds)
