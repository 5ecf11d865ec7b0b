import os
import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from formflow.config.settings import Settings
from formflow.database.connection import close_pool, get_connection, init_pool
from formflow.database.schema import create_schema


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "formflow_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest_asyncio.fixture
async def integration_pool(test_settings: Settings) -> AsyncGenerator[None, None]:
    try:
        await init_pool(test_settings)
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env vars.")
    try:
        await create_schema()
        yield
    finally:
        await close_pool()


@pytest.fixture
def user_id() -> str:
    return f"it-{uuid.uuid4().hex[:12]}"


@pytest_asyncio.fixture
async def integration_cleanup(
    integration_pool: None, user_id: str
) -> AsyncGenerator[None, None]:
    yield
    async with get_connection() as conn:
        for table in ("form_processings", "user_usage", "processing_batches"):
            await conn.execute(f"DELETE FROM {table} WHERE user_id = %s", (user_id,))
        await conn.commit()
