"""FastAPI dependency injection helpers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import async_session_factory
from src.services.accounts import AccountService
from src.services.trip_lifecycle import TripLifecycleManager


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_lifecycle(db: AsyncSession = Depends(get_db)) -> TripLifecycleManager:
    return TripLifecycleManager(db)


def get_accounts(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db)
