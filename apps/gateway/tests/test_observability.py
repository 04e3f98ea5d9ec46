"""可观测性测试

测试内容：
1. 每个响应带 X-Request-ID（ULID 格式）
2. 不同请求的 request_id 不同
3. 上游 X-Request-ID 沿用与校验
4. 凭据字段遮蔽、service 字段
5. 任务路径 task_id 提取
"""

from httpx import AsyncClient
from kanban.gateway.middleware.logging_config import (
    SERVICE_NAME,
    add_service_name,
    redact_secrets,
)
from kanban.gateway.middleware.logging_mw import resolve_request_id
from kanban.gateway.middleware.trace_mw import extract_task_id

TASK_ID = "01JTASK0000000000000000001"


class TestRequestId:
    async def test_response_has_request_id(self, client: AsyncClient):
        resp = await client.get("/health")
        request_id = resp.headers.get("x-request-id")
        assert request_id is not None
        assert len(request_id) == 26

    async def test_request_ids_are_unique(self, client: AsyncClient):
        first = await client.get("/health")
        second = await client.get("/health")
        assert first.headers["x-request-id"] != second.headers["x-request-id"]

    async def test_error_responses_carry_request_id(self, anon_client: AsyncClient):
        resp = await anon_client.get("/api/tasks")
        assert resp.status_code == 401
        assert "x-request-id" in resp.headers

    async def test_inbound_request_id_echoed(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "edge-7f3a.1"})
        assert resp.headers["x-request-id"] == "edge-7f3a.1"

    async def test_malformed_inbound_request_id_replaced(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "a b/c"})
        assert resp.headers["x-request-id"] != "a b/c"
        assert len(resp.headers["x-request-id"]) == 26

    def test_resolve_request_id(self):
        assert resolve_request_id("req-1") == "req-1"
        assert len(resolve_request_id(None)) == 26
        assert len(resolve_request_id("x" * 65)) == 26


class TestLogProcessors:
    def test_secrets_redacted(self):
        event = redact_secrets(
            None,
            "info",
            {"event": "x", "authorization": "Bearer k", "api_key": "k", "task_id": "t"},
        )
        assert event == {
            "event": "x",
            "authorization": "***",
            "api_key": "***",
            "task_id": "t",
        }

    def test_empty_secret_left_as_is(self):
        assert redact_secrets(None, "info", {"token": ""}) == {"token": ""}

    def test_service_name_added(self):
        assert add_service_name(None, "info", {"event": "x"}) == {
            "event": "x",
            "service": SERVICE_NAME,
        }


class TestTaskIdExtraction:
    def test_task_route(self):
        assert extract_task_id(f"/api/tasks/{TASK_ID}/pick") == TASK_ID

    def test_task_detail(self):
        assert extract_task_id(f"/api/tasks/{TASK_ID}") == TASK_ID

    def test_list_route(self):
        assert extract_task_id("/api/tasks") is None

    def test_calendar_route(self):
        assert extract_task_id("/api/calendar/tasks/scheduled") is None
