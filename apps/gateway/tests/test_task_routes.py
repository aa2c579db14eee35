"""任务 HTTP API 测试

测试内容：
1. 创建 / 查询 / 编辑 / 删除
2. Idempotency-Key 201 / 200
3. 身份请求头 401 / 403
4. 错误信封与状态码映射
"""

import json

from httpx import AsyncClient
from taskmarket.core.errors import IdempotencyKeyReusedError, TaskValidationError
from taskmarket.gateway.errors import status_code_for, task_error_handler

CUSTOMER = {"X-Actor-Role": "customer", "X-Actor-Id": "cust-001"}
OTHER_CUSTOMER = {"X-Actor-Role": "customer", "X-Actor-Id": "cust-002"}
PROV_1 = {"X-Actor-Role": "provider", "X-Actor-Id": "prov-001"}
PROV_2 = {"X-Actor-Role": "provider", "X-Actor-Id": "prov-002"}


async def _create(client: AsyncClient, payload: dict, headers: dict = CUSTOMER) -> dict:
    resp = await client.post("/api/tasks", json=payload, headers=headers)
    assert resp.status_code == 201
    return resp.json()["task"]


class TestCreateTask:
    async def test_create_returns_draft(self, client: AsyncClient, draft_payload: dict):
        resp = await client.post("/api/tasks", json=draft_payload, headers=CUSTOMER)

        assert resp.status_code == 201
        data = resp.json()
        assert data["created"] is True
        task = data["task"]
        assert len(task["task_id"]) == 26
        assert task["status"] == "draft"
        assert task["customer_id"] == "cust-001"
        assert task["version"] == 1
        assert task["schedule"]["priority"] == "HIGH"
        assert task["tags"] == ["plumbing", "urgent"]

    async def test_idempotency_key(self, client: AsyncClient, draft_payload: dict):
        headers = {**CUSTOMER, "Idempotency-Key": "sink-once"}
        first = await client.post("/api/tasks", json=draft_payload, headers=headers)
        second = await client.post("/api/tasks", json=draft_payload, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["task"]["task_id"] == first.json()["task"]["task_id"]

    async def test_idempotency_key_per_customer(self, client: AsyncClient, draft_payload: dict):
        first = await client.post(
            "/api/tasks", json=draft_payload, headers={**CUSTOMER, "Idempotency-Key": "k1"}
        )
        second = await client.post(
            "/api/tasks", json=draft_payload, headers={**OTHER_CUSTOMER, "Idempotency-Key": "k1"}
        )

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["created"] is True
        assert second.json()["task"]["customer_id"] == "cust-002"
        assert second.json()["task"]["task_id"] != first.json()["task"]["task_id"]

    async def test_idempotency_key_replay_after_delete(
        self, client: AsyncClient, draft_payload: dict
    ):
        headers = {**CUSTOMER, "Idempotency-Key": "sink-once"}
        first = await client.post("/api/tasks", json=draft_payload, headers=headers)
        task_id = first.json()["task"]["task_id"]
        await client.delete(f"/api/tasks/{task_id}", headers=CUSTOMER)

        resp = await client.post("/api/tasks", json=draft_payload, headers=headers)

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "IDEMPOTENCY_KEY_REUSED"

    async def test_validation_error_envelope(self, client: AsyncClient, draft_payload: dict):
        payload = {**draft_payload, "estimated_budget": {"min": 300, "max": 100}}
        resp = await client.post("/api/tasks", json=payload, headers=CUSTOMER)

        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]

    async def test_unknown_field_rejected(self, client: AsyncClient, draft_payload: dict):
        payload = {**draft_payload, "status": "completed"}
        resp = await client.post("/api/tasks", json=payload, headers=CUSTOMER)
        assert resp.status_code == 422

    async def test_missing_identity(self, client: AsyncClient, draft_payload: dict):
        resp = await client.post("/api/tasks", json=draft_payload)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHENTICATED"

    async def test_unknown_role(self, client: AsyncClient, draft_payload: dict):
        headers = {"X-Actor-Role": "admin", "X-Actor-Id": "root"}
        resp = await client.post("/api/tasks", json=draft_payload, headers=headers)
        assert resp.status_code == 401

    async def test_provider_cannot_create(self, client: AsyncClient, draft_payload: dict):
        resp = await client.post("/api/tasks", json=draft_payload, headers=PROV_1)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"


class TestQueryTask:
    async def test_detail_includes_events(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        await client.post(f"/api/tasks/{task['task_id']}/publish", headers=CUSTOMER)

        resp = await client.get(f"/api/tasks/{task['task_id']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["task"]["status"] == "floating"
        assert [e["type"] for e in data["events"]] == ["TASK_CREATED", "TASK_PUBLISHED"]
        assert data["events"][1]["payload"]["to_status"] == "floating"

    async def test_unknown_task_404(self, client: AsyncClient):
        resp = await client.get("/api/tasks/01JMISSING0000000000000000")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "TASK_NOT_FOUND"

    async def test_list_filters(self, client: AsyncClient, draft_payload: dict):
        first = await _create(client, draft_payload)
        await _create(client, draft_payload, OTHER_CUSTOMER)
        await client.post(f"/api/tasks/{first['task_id']}/publish", headers=CUSTOMER)

        all_tasks = (await client.get("/api/tasks")).json()["tasks"]
        assert len(all_tasks) == 2
        drafts = (await client.get("/api/tasks", params={"status": "draft"})).json()["tasks"]
        assert [t["customer_id"] for t in drafts] == ["cust-002"]

        mine = (await client.get("/api/customer/tasks", headers=CUSTOMER)).json()["tasks"]
        assert [t["task_id"] for t in mine] == [first["task_id"]]

        floating = (await client.get("/api/floating-tasks", headers=PROV_1)).json()["tasks"]
        assert [t["task_id"] for t in floating] == [first["task_id"]]

    async def test_floating_list_requires_provider(self, client: AsyncClient):
        resp = await client.get("/api/floating-tasks", headers=CUSTOMER)
        assert resp.status_code == 403


class TestEditTask:
    async def test_patch_draft(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        resp = await client.patch(
            f"/api/tasks/{task['task_id']}",
            json={"title": "Fix kitchen sink", "estimated_budget": None},
            headers=CUSTOMER,
        )

        assert resp.status_code == 200
        updated = resp.json()["task"]
        assert updated["title"] == "Fix kitchen sink"
        assert updated["estimated_budget"] is None
        assert updated["version"] == 2

    async def test_patch_title_after_publish_rejected(
        self, client: AsyncClient, draft_payload: dict
    ):
        task = await _create(client, draft_payload)
        await client.post(f"/api/tasks/{task['task_id']}/publish", headers=CUSTOMER)

        resp = await client.patch(
            f"/api/tasks/{task['task_id']}", json={"title": "New"}, headers=CUSTOMER
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "TASK_NOT_EDITABLE"

    async def test_patch_null_title_rejected(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        resp = await client.patch(
            f"/api/tasks/{task['task_id']}", json={"title": None}, headers=CUSTOMER
        )
        assert resp.status_code == 422

    async def test_patch_by_other_customer(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        resp = await client.patch(
            f"/api/tasks/{task['task_id']}", json={"description": "x"}, headers=OTHER_CUSTOMER
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "NOT_TASK_OWNER"

    async def test_delete(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        resp = await client.delete(f"/api/tasks/{task['task_id']}", headers=CUSTOMER)

        assert resp.status_code == 204
        assert (await client.get(f"/api/tasks/{task['task_id']}")).status_code == 404

    async def test_delete_matched_rejected(
        self, client: AsyncClient, draft_payload: dict, providers
    ):
        task = await _create(client, draft_payload)
        task_id = task["task_id"]
        await client.post(f"/api/tasks/{task_id}/publish", headers=CUSTOMER)
        await client.post(f"/api/tasks/{task_id}/interest", headers=PROV_1)
        await client.post(
            f"/api/tasks/{task_id}/request-provider",
            json={"provider_id": "prov-001"},
            headers=CUSTOMER,
        )

        resp = await client.delete(f"/api/tasks/{task_id}", headers=CUSTOMER)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "INVALID_TRANSITION"


class TestMatchingRoutes:
    async def test_interest_and_selection(
        self, client: AsyncClient, draft_payload: dict, providers
    ):
        task = await _create(client, draft_payload)
        task_id = task["task_id"]
        await client.post(f"/api/tasks/{task_id}/publish", headers=CUSTOMER)

        resp = await client.post(
            f"/api/tasks/{task_id}/interest", json={"message": "Available now"}, headers=PROV_1
        )
        assert resp.status_code == 200
        interests = resp.json()["task"]["interested_providers"]
        assert interests[0]["provider_id"] == "prov-001"
        assert interests[0]["message"] == "Available now"

        resp = await client.post(
            f"/api/tasks/{task_id}/request-provider",
            json={"provider_id": "prov-001"},
            headers=CUSTOMER,
        )
        assert resp.json()["task"]["status"] == "matched"

        mine = (await client.get("/api/provider/tasks", headers=PROV_1)).json()["tasks"]
        assert [t["task_id"] for t in mine] == [task_id]

    async def test_interest_on_draft(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        resp = await client.post(f"/api/tasks/{task['task_id']}/interest", headers=PROV_1)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "TASK_NOT_FLOATING"

    async def test_request_unknown_provider(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        await client.post(f"/api/tasks/{task['task_id']}/publish", headers=CUSTOMER)
        resp = await client.post(
            f"/api/tasks/{task['task_id']}/request-provider",
            json={"provider_id": "prov-404"},
            headers=CUSTOMER,
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "PROVIDER_NOT_FOUND"

    async def test_accept_by_wrong_provider(
        self, client: AsyncClient, draft_payload: dict, providers
    ):
        task = await _create(client, draft_payload)
        task_id = task["task_id"]
        await client.post(f"/api/tasks/{task_id}/publish", headers=CUSTOMER)
        await client.post(
            f"/api/tasks/{task_id}/request-provider",
            json={"provider_id": "prov-001"},
            headers=CUSTOMER,
        )

        pending = (await client.get("/api/provider/requests", headers=PROV_1)).json()["tasks"]
        assert [t["task_id"] for t in pending] == [task_id]

        resp = await client.post(f"/api/tasks/{task_id}/accept", headers=PROV_2)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "NOT_REQUESTED_PROVIDER"

        resp = await client.post(
            f"/api/tasks/{task_id}/decline", json={"reason": "Too far"}, headers=PROV_1
        )
        assert resp.status_code == 200
        assert resp.json()["task"]["status"] == "floating"
        assert resp.json()["task"]["decline_reason"] == "Too far"

    async def test_start_by_unmatched_provider(
        self, client: AsyncClient, draft_payload: dict, providers
    ):
        task = await _create(client, draft_payload)
        task_id = task["task_id"]
        await client.post(f"/api/tasks/{task_id}/publish", headers=CUSTOMER)
        await client.post(f"/api/tasks/{task_id}/interest", headers=PROV_1)
        await client.post(
            f"/api/tasks/{task_id}/request-provider",
            json={"provider_id": "prov-001"},
            headers=CUSTOMER,
        )

        resp = await client.post(f"/api/tasks/{task_id}/start", headers=PROV_2)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "NOT_MATCHED_PROVIDER"

    async def test_cancel_terminal_task(self, client: AsyncClient, draft_payload: dict):
        task = await _create(client, draft_payload)
        task_id = task["task_id"]
        resp = await client.post(
            f"/api/tasks/{task_id}/cancel", json={"reason": "No longer needed"}, headers=CUSTOMER
        )
        assert resp.status_code == 200
        assert resp.json()["task"]["cancel_reason"] == "No longer needed"
        assert resp.json()["task"]["cancelled_by"] == "customer"

        resp = await client.post(f"/api/tasks/{task_id}/cancel", headers=CUSTOMER)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "TASK_TERMINAL_STATE"


class TestProviderRoutes:
    async def test_register_and_fetch(self, client: AsyncClient):
        resp = await client.post(
            "/api/providers", json={"display_name": "Kwame Plumbing", "provider_id": "prov-777"}
        )
        assert resp.status_code == 201
        assert resp.json()["provider"]["provider_id"] == "prov-777"

        resp = await client.get("/api/providers/prov-777")
        assert resp.json()["provider"]["display_name"] == "Kwame Plumbing"

    async def test_duplicate_provider(self, client: AsyncClient, providers):
        resp = await client.post(
            "/api/providers", json={"display_name": "Copycat", "provider_id": "prov-001"}
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "PROVIDER_ALREADY_EXISTS"

    async def test_unknown_provider(self, client: AsyncClient):
        resp = await client.get("/api/providers/prov-404")
        assert resp.status_code == 404


class TestErrorMapping:
    """领域异常 -> 状态码与信封"""

    async def test_validation_details_in_envelope(self):
        exc = TaskValidationError(
            "Invalid TaskPatch: 1 validation error(s)",
            [{"type": "extra_forbidden", "loc": ("status",), "msg": "Extra inputs forbidden"}],
        )
        resp = await task_error_handler(None, exc)

        assert resp.status_code == 422
        error = json.loads(resp.body)["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["loc"] == ["status"]

    async def test_validation_without_details(self):
        resp = await task_error_handler(None, TaskValidationError("bad input"))
        assert "details" not in json.loads(resp.body)["error"]

    def test_idempotency_conflict_status(self):
        assert status_code_for(IdempotencyKeyReusedError("k1", "01JTASK")) == 409
