"""Connection repository: read-only lookups used by the timeline engine."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Connection

logger = logging.getLogger(__name__)


async def get_by_id(session: AsyncSession, connection_id: int) -> Optional[Connection]:
    """Return the Connection with this id, or None."""
    result = await session.execute(
        select(Connection).where(Connection.id == connection_id)
    )
    return result.scalar_one_or_none()


async def exists(session: AsyncSession, connection_id: int) -> bool:
    result = await session.execute(
        select(Connection.id).where(Connection.id == connection_id)
    )
    return result.scalar_one_or_none() is not None
