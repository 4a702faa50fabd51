"""
Integration tests for the alert rule administration endpoints.
"""

from __future__ import annotations

from httpx import AsyncClient

RULE_PAYLOAD = {
    "name": "Critical disease risk SMS",
    "description": "Text district health officers on critical disease-risk predictions.",
    "type": "disease_risk",
    "severity": "critical",
    "actions": [
        {"type": "sms", "recipients": ["+919800000001"]},
        {"type": "telegram", "recipients": ["@dho_shillong"]},
    ],
    "escalation_rules": [
        {"delay_minutes": 30, "severity_increase": False, "additional_recipients": ["dm@gov.in"]}
    ],
}


async def _create_rule(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/api/v1/alert-rules/", json={**RULE_PAYLOAD, **overrides})
    assert response.status_code == 201
    return response.json()


class TestAlertRulesApi:
    async def test_create_and_get(self, async_client: AsyncClient):
        created = await _create_rule(async_client)

        response = await async_client.get(f"/api/v1/alert-rules/{created['rule_id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == RULE_PAYLOAD["name"]
        assert [a["type"] for a in data["actions"]] == ["sms", "telegram"]
        assert data["escalation_rules"][0]["delay_minutes"] == 30
        assert data["enabled"] is True

    async def test_list(self, async_client: AsyncClient):
        await _create_rule(async_client)
        await _create_rule(async_client, name="Second rule")

        response = await async_client.get("/api/v1/alert-rules/")

        assert response.status_code == 200
        assert len(response.json()) == 2

    async def test_patch_only_changes_given_fields(self, async_client: AsyncClient):
        created = await _create_rule(async_client)

        response = await async_client.patch(
            f"/api/v1/alert-rules/{created['rule_id']}", json={"enabled": False}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is False
        assert data["name"] == RULE_PAYLOAD["name"]

    async def test_patch_null_for_required_field_is_rejected(self, async_client: AsyncClient):
        created = await _create_rule(async_client)

        response = await async_client.patch(
            f"/api/v1/alert-rules/{created['rule_id']}", json={"actions": None}
        )

        assert response.status_code == 422
        stored = (await async_client.get(f"/api/v1/alert-rules/{created['rule_id']}")).json()
        assert [a["type"] for a in stored["actions"]] == ["sms", "telegram"]

    async def test_missing_rule_returns_404(self, async_client: AsyncClient):
        get_response = await async_client.get("/api/v1/alert-rules/missing-id")
        patch_response = await async_client.patch(
            "/api/v1/alert-rules/missing-id", json={"enabled": False}
        )
        delete_response = await async_client.delete("/api/v1/alert-rules/missing-id")

        assert get_response.status_code == 404
        assert patch_response.status_code == 404
        assert delete_response.status_code == 404

    async def test_delete(self, async_client: AsyncClient):
        created = await _create_rule(async_client)

        response = await async_client.delete(f"/api/v1/alert-rules/{created['rule_id']}")

        assert response.status_code == 200
        assert response.json()["rule_id"] == created["rule_id"]
        assert (await async_client.get("/api/v1/alert-rules/")).json() == []

    async def test_invalid_payload(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/alert-rules/", json={**RULE_PAYLOAD, "auto_resolve_after_minutes": 0}
        )

        assert response.status_code == 422
