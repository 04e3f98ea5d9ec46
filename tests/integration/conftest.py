"""集成测试共享 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from kanban.core.store import create_store_group

API_KEY = "integration-key"


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """集成测试用 FastAPI app"""
    db_path = tmp_path / "sqlite" / "kanban.db"
    monkeypatch.setenv("KANBAN_DB_PATH", str(db_path))
    monkeypatch.setenv("KANBAN_API_KEY", API_KEY)
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from kanban.gateway.main import create_app

    app = create_app()
    store_group = await create_store_group(str(db_path))
    app.state.store_group = store_group

    yield app

    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {API_KEY}"},
    ) as ac:
        yield ac
