"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from finrecon.deps import CurrentUserId, Store

    async def my_endpoint(store: Store, user_id: CurrentUserId):
        ...
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finrecon.auth import get_current_user_id
from finrecon.database import get_session_maker
from finrecon.services.reconciliation_store import ReconciliationStore


def get_reconciliation_store(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> ReconciliationStore:
    return ReconciliationStore(session_maker)


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
Store = Annotated[ReconciliationStore, Depends(get_reconciliation_store)]

__all__ = ["CurrentUserId", "Store"]
