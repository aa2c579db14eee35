"""端到端集成测试

客户发布任务 -> provider 表达意向 -> 客户选定 -> provider 开始 -> 完成
"""

from httpx import AsyncClient

CUSTOMER = {"X-Actor-Role": "customer", "X-Actor-Id": "cust-accra-01"}


def as_provider(provider_id: str) -> dict[str, str]:
    return {"X-Actor-Role": "provider", "X-Actor-Id": provider_id}


async def _post(client: AsyncClient, url: str, headers: dict, json: dict | None = None) -> dict:
    resp = await client.post(url, json=json, headers=headers)
    assert resp.status_code in (200, 201), resp.text
    return resp.json()["task"]


class TestMarketplaceEndToEnd:
    """从发布到完成的全链路"""

    async def test_interest_selection_flow(
        self, client: AsyncClient, draft_payload: dict, registered_providers
    ):
        """两个 provider 表达意向，客户选定第二个，直接 matched"""
        first, second = registered_providers[:2]

        task = await _post(client, "/api/tasks", CUSTOMER, draft_payload)
        task_id = task["task_id"]
        assert task["title"] == "Fix sink"
        assert task["location"]["city"] == "Accra"

        task = await _post(client, f"/api/tasks/{task_id}/publish", CUSTOMER)
        assert task["status"] == "floating"

        await _post(client, f"/api/tasks/{task_id}/interest", as_provider(first))
        task = await _post(
            client,
            f"/api/tasks/{task_id}/interest",
            as_provider(second),
            {"message": "I have the parts"},
        )
        assert [i["provider_id"] for i in task["interested_providers"]] == [first, second]

        task = await _post(
            client,
            f"/api/tasks/{task_id}/request-provider",
            CUSTOMER,
            {"provider_id": second},
        )
        assert task["status"] == "matched"
        assert task["matched_provider_id"] == second
        assert task["requested_provider"] is None

        resp = await client.post(f"/api/tasks/{task_id}/start", headers=as_provider(first))
        assert resp.status_code == 403

        task = await _post(client, f"/api/tasks/{task_id}/start", as_provider(second))
        assert task["status"] == "in_progress"
        task = await _post(client, f"/api/tasks/{task_id}/complete", as_provider(second))

        assert task["status"] == "completed"
        assert task["matched_provider_id"] == second
        assert len(task["interested_providers"]) == 2
        assert task["completed_at"] is not None

        resp = await client.get(f"/api/tasks/{task_id}")
        events = resp.json()["events"]
        assert [e["type"] for e in events] == [
            "TASK_CREATED",
            "TASK_PUBLISHED",
            "INTEREST_EXPRESSED",
            "INTEREST_EXPRESSED",
            "TASK_MATCHED",
            "TASK_STARTED",
            "TASK_COMPLETED",
        ]
        assert [e["task_seq"] for e in events] == list(range(1, 8))
        assert events[-1]["actor_id"] == second

        resp = await client.post(f"/api/tasks/{task_id}/cancel", headers=CUSTOMER)
        assert resp.status_code == 409

    async def test_request_accept_flow(
        self, client: AsyncClient, draft_payload: dict, registered_providers
    ):
        """定向邀请未表达意向的 provider：被拒后改邀另一个，接受后完成"""
        first, second, _ = registered_providers

        task = await _post(client, "/api/tasks", CUSTOMER, draft_payload)
        task_id = task["task_id"]
        await _post(client, f"/api/tasks/{task_id}/publish", CUSTOMER)

        task = await _post(
            client,
            f"/api/tasks/{task_id}/request-provider",
            CUSTOMER,
            {"provider_id": first, "message": "Are you free Tuesday?"},
        )
        assert task["status"] == "requested"
        assert task["requested_provider"]["message"] == "Are you free Tuesday?"

        task = await _post(
            client, f"/api/tasks/{task_id}/decline", as_provider(first), {"reason": "Booked"}
        )
        assert task["status"] == "floating"

        await _post(
            client, f"/api/tasks/{task_id}/request-provider", CUSTOMER, {"provider_id": second}
        )
        requests = (
            await client.get("/api/provider/requests", headers=as_provider(second))
        ).json()["tasks"]
        assert [t["task_id"] for t in requests] == [task_id]

        task = await _post(
            client, f"/api/tasks/{task_id}/accept", as_provider(second), {"message": "On it"}
        )
        assert task["status"] == "matched"
        assert task["provider_message"] == "On it"
        assert task["requested_provider"]["provider_id"] == second

        await _post(client, f"/api/tasks/{task_id}/start", as_provider(second))
        task = await _post(client, f"/api/tasks/{task_id}/complete", as_provider(second))
        assert task["status"] == "completed"

        active = (await client.get("/api/provider/tasks", headers=as_provider(second))).json()
        assert active["tasks"] == []
        done = (
            await client.get(
                "/api/provider/tasks", params={"status": "completed"}, headers=as_provider(second)
            )
        ).json()
        assert [t["task_id"] for t in done["tasks"]] == [task_id]
