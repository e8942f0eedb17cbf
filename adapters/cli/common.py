"""
CLI 공통 유틸리티

명령마다 설정을 읽고 데이터베이스 세션과 어댑터 팩토리를 준비합니다.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Tuple

from rich.console import Console
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.db.database import initialize_database
from adapters.factory import AdapterFactory, initialize_adapter_factory
from config.adapters import get_config

console = Console()


@asynccontextmanager
async def cli_session() -> AsyncGenerator[Tuple[AdapterFactory, AsyncSession], None]:
    """팩토리와 DB 세션을 열고, 끝나면 연결을 닫습니다."""
    config = get_config()
    factory = initialize_adapter_factory(config)

    db_adapter = initialize_database(config)
    await db_adapter.initialize()
    await db_adapter.create_tables()

    try:
        async with db_adapter.get_session() as session:
            yield factory, session
    finally:
        await db_adapter.close()
