"""
FastAPI 의존성

요청마다 DB 세션을 열고 유즈케이스를 조립합니다.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.usecases.authentication import TokenManager
from core.usecases.mail_sync import SyncOrchestrator
from adapters.db.database import get_db_session
from adapters.factory import get_adapter_factory


async def get_token_manager(session: AsyncSession = Depends(get_db_session)) -> TokenManager:
    return get_adapter_factory().create_token_manager(session)


async def get_sync_orchestrator(session: AsyncSession = Depends(get_db_session)) -> SyncOrchestrator:
    return get_adapter_factory().create_sync_orchestrator(session)
