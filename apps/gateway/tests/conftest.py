"""apps/gateway 测试配置 -- httpx AsyncClient + 临时 DB fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from kanban.core.store import create_store_group
from kanban.gateway.services.task_service import TaskService

API_KEY = "test-api-key"
SYSTEM_HEADERS = {"Authorization": f"Bearer {API_KEY}"}


@pytest.fixture(autouse=True)
def gateway_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """测试环境变量"""
    db_path = tmp_path / "sqlite" / "test.db"
    monkeypatch.setenv("KANBAN_DB_PATH", str(db_path))
    monkeypatch.setenv("KANBAN_API_KEY", API_KEY)
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    return db_path


@pytest_asyncio.fixture
async def store_group(gateway_env: Path):
    group = await create_store_group(str(gateway_env))
    yield group
    await group.conn.close()


@pytest_asyncio.fixture
async def service(store_group) -> TaskService:
    return TaskService(store_group)


@pytest_asyncio.fixture
async def app(store_group):
    """创建测试用 FastAPI app 实例（绕过 lifespan，手动注入 StoreGroup）"""
    from kanban.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """系统作用域的 httpx AsyncClient"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=SYSTEM_HEADERS,
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def anon_client(app) -> AsyncGenerator[AsyncClient, None]:
    """不带任何身份信息的 AsyncClient"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
