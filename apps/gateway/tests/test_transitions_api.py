"""任务流转 API 测试

测试内容：
1. pick / complete 成功与 INVALID_STATE / TASK_NOT_FOUND
2. review / plan-review 响应结构与完备性规则
3. POST /api/tasks/{task_id}/status 直接设置状态
"""

from httpx import AsyncClient

MISSING_ID = "01JNOPE0000000000000000000"


async def _create(client: AsyncClient, **body) -> dict:
    body.setdefault("title", "重构缓存层")
    resp = await client.post("/api/tasks", json=body)
    return resp.json()["task"]


class TestPickApi:
    async def test_pick_with_body_session(self, client: AsyncClient):
        task = await _create(client, status="ready")
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/pick", json={"session_id": "agent-7"}
        )
        assert resp.status_code == 200
        picked = resp.json()["task"]
        assert picked["status"] == "in_progress"
        assert picked["session_id"] == "agent-7"

    async def test_pick_session_from_header(self, client: AsyncClient):
        task = await _create(client, status="ready")
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/pick",
            headers={"X-Session-ID": "agent-header"},
        )
        assert resp.status_code == 200
        assert resp.json()["task"]["session_id"] == "agent-header"

    async def test_pick_wrong_status(self, client: AsyncClient):
        task = await _create(client)
        resp = await client.post(f"/api/tasks/{task['task_id']}/pick")
        assert resp.status_code == 400
        assert resp.json() == {
            "error": {
                "code": "INVALID_STATE",
                "message": (
                    "Cannot pick task in 'planned' status. "
                    "Task must be in 'ready' status."
                ),
            }
        }

    async def test_pick_missing(self, client: AsyncClient):
        resp = await client.post(f"/api/tasks/{MISSING_ID}/pick")
        assert resp.status_code == 404
        assert resp.json()["error"] == {
            "code": "TASK_NOT_FOUND",
            "message": "Task not found",
        }


class TestCompleteApi:
    async def test_complete(self, client: AsyncClient):
        task = await _create(client, status="in_progress")
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/complete", json={"notes": "已上线"}
        )
        assert resp.status_code == 200
        done = resp.json()["task"]
        assert done["status"] == "review"
        assert done["notes"] == "已上线"
        assert done["completed_at"] is not None

    async def test_complete_without_body(self, client: AsyncClient):
        task = await _create(client, status="in_progress")
        resp = await client.post(f"/api/tasks/{task['task_id']}/complete")
        assert resp.status_code == 200

    async def test_complete_wrong_status(self, client: AsyncClient):
        task = await _create(client, status="review")
        resp = await client.post(f"/api/tasks/{task['task_id']}/complete")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_STATE"


class TestReviewApi:
    async def test_review_all_approved(self, client: AsyncClient):
        task = await _create(client, status="review", acceptance_criteria=["a", "b"])
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/review",
            json={
                "criteria": [
                    {"index": 0, "status": "approved"},
                    {"index": 1, "status": "approved"},
                ],
                "general_comment": "great",
            },
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["allApproved"] is True
        assert body["approved"] == 2
        assert body["needsWork"] == 0
        assert body["task"]["status"] == "done"
        assert body["task"]["review_state"]["criteria"]["0"]["status"] == "approved"

    async def test_review_needs_work(self, client: AsyncClient):
        task = await _create(client, status="review", acceptance_criteria=["a", "b"])
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/review",
            json={
                "criteria": [
                    {"index": 0, "status": "approved"},
                    {"index": 1, "status": "needs_work", "comment": "缺少测试"},
                ],
                "generalComment": "almost",
            },
        )
        body = resp.json()
        assert body["allApproved"] is False
        assert body["needsWork"] == 1
        assert body["task"]["status"] == "review"
        message = body["task"]["activity_log"][-1]["message"]
        assert message.startswith("📋 Review submitted:")
        assert '• b: "缺少测试"' in message
        assert message.endswith("💬 Additional comments:\nalmost")

    async def test_review_response_keys(self, client: AsyncClient):
        task = await _create(client, status="review", acceptance_criteria=["a"])
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/review",
            json={"criteria": [{"index": 0, "status": "needs_work", "comment": "x"}]},
        )
        body = resp.json()
        assert set(body) == {"task", "allApproved", "approved", "needsWork"}
        review_state = body["task"]["review_state"]
        assert set(review_state) == {"lastReviewAt", "criteria"}
        assert set(review_state["criteria"]["0"]) == {"status", "comment", "reviewedAt"}
        details = body["task"]["activity_log"][-1]["details"]
        assert details["needs_work"] == 1

    async def test_status_change_details_keys(self, client: AsyncClient):
        task = await _create(client)
        resp = await client.patch(
            f"/api/tasks/{task['task_id']}",
            json={"status": "blocked", "status_reason": "x"},
        )
        details = resp.json()["task"]["activity_log"][-1]["details"]
        assert details == {"from": "planned", "to": "blocked", "reason": "x"}

    async def test_review_wrong_status(self, client: AsyncClient):
        task = await _create(client, status="in_progress")
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/review", json={"criteria": []}
        )
        assert resp.status_code == 400

    async def test_review_criteria_required(self, client: AsyncClient):
        task = await _create(client, status="review")
        resp = await client.post(f"/api/tasks/{task['task_id']}/review", json={})
        assert resp.status_code == 422

    async def test_review_invalid_criterion_status(self, client: AsyncClient):
        task = await _create(client, status="review")
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/review",
            json={"criteria": [{"index": 0, "status": "maybe"}]},
        )
        assert resp.status_code == 422

    async def test_review_missing(self, client: AsyncClient):
        resp = await client.post(
            f"/api/tasks/{MISSING_ID}/review", json={"criteria": []}
        )
        assert resp.status_code == 404


class TestPlanReviewApi:
    async def test_plan_approved(self, client: AsyncClient):
        task = await _create(client, acceptance_criteria=["拆分模块"])
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/plan-review",
            json={"criteria": [{"index": 0, "status": "approved"}]},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["allApproved"] is True
        assert body["task"]["status"] == "ready"
        assert body["task"]["completed_at"] is None
        assert body["task"]["review_state"]["reviewType"] == "plan"

    async def test_plan_review_wrong_status(self, client: AsyncClient):
        task = await _create(client, status="ready")
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/plan-review", json={"criteria": []}
        )
        assert resp.status_code == 400
        assert "Task must be in 'planned' status." in resp.json()["error"]["message"]


class TestSetStatusApi:
    async def test_force_status(self, client: AsyncClient):
        task = await _create(client)
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/status",
            json={"status": "review", "reason": "manual fix"},
        )
        assert resp.status_code == 200
        updated = resp.json()["task"]
        assert updated["status"] == "review"
        assert updated["activity_log"][-1]["message"] == "👀 Review: manual fix"

    async def test_force_status_missing(self, client: AsyncClient):
        resp = await client.post(
            f"/api/tasks/{MISSING_ID}/status", json={"status": "done"}
        )
        assert resp.status_code == 404
