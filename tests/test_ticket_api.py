"""HTTP contract tests: routes, envelopes and error codes."""

from uuid import uuid4

import pytest

from src.config import Role

TICKET = {
    "title": "VPN keeps dropping",
    "description": "Connection drops every few minutes since Monday",
    "priority": "high",
}


async def _create(client, headers, payload=None):
    response = await client.post("/api/tickets/", json=payload or TICKET, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["ticket"]


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_principal_header(self, async_client):
        response = await async_client.get("/api/tickets/")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_unknown_principal(self, async_client):
        response = await async_client.get("/api/tickets/", headers={"X-User-ID": str(uuid4())})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_principal(self, async_client, make_user, auth):
        user = await make_user(Role.USER, is_active=False)

        response = await async_client.get("/api/tickets/", headers=auth(user))

        assert response.status_code == 401
        assert response.json() == {
            "error": {"code": "UNAUTHORIZED", "message": "Invalid principal"}
        }


class TestTicketRoutes:
    @pytest.mark.asyncio
    async def test_create_envelope(self, async_client, make_user, auth, clock):
        user = await make_user(Role.USER)
        agent = await make_user(Role.AGENT)

        response = await async_client.post("/api/tickets/", json=TICKET, headers=auth(user))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Ticket created successfully"
        ticket = body["ticket"]
        assert ticket["status"] == "open"
        assert ticket["priority"] == "high"
        assert ticket["version"] == 1
        assert ticket["sla_status"] == "active"
        assert ticket["is_sla_breached"] is False
        assert ticket["created_by"]["id"] == str(user.id)
        assert ticket["assigned_to"]["id"] == str(agent.id)
        assert "X-Correlation-ID" in response.headers

    @pytest.mark.asyncio
    async def test_create_validation_error(self, async_client, make_user, auth):
        user = await make_user(Role.USER)

        response = await async_client.post(
            "/api/tickets/",
            json={**TICKET, "title": "   Hi  "},
            headers=auth(user),
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "title"

    @pytest.mark.asyncio
    async def test_get_other_users_ticket_is_not_found(self, async_client, make_user, auth):
        owner = await make_user(Role.USER)
        other = await make_user(Role.USER)
        ticket = await _create(async_client, auth(owner))

        response = await async_client.get(f"/api/tickets/{ticket['id']}", headers=auth(other))

        assert response.status_code == 404
        assert response.json() == {"error": {"code": "NOT_FOUND", "message": "Ticket not found"}}

    @pytest.mark.asyncio
    async def test_get_returns_ticket_and_comments(self, async_client, make_user, auth, clock):
        user = await make_user(Role.USER)
        ticket = await _create(async_client, auth(user))

        clock.advance(minutes=1)
        comment = await async_client.post(
            f"/api/tickets/{ticket['id']}/comments",
            json={"content": "Still happening today"},
            headers=auth(user),
        )
        assert comment.status_code == 201
        assert comment.json()["message"] == "Comment added successfully"
        assert comment.json()["comment"]["author"]["id"] == str(user.id)

        response = await async_client.get(f"/api/tickets/{ticket['id']}", headers=auth(user))

        assert response.status_code == 200
        body = response.json()
        assert body["ticket"]["id"] == ticket["id"]
        assert [c["content"] for c in body["comments"]] == ["Still happening today"]

    @pytest.mark.asyncio
    async def test_patch_stale_version_conflicts(self, async_client, make_user, auth):
        user = await make_user(Role.USER)
        ticket = await _create(async_client, auth(user))
        url = f"/api/tickets/{ticket['id']}"

        first = await async_client.patch(
            url, json={"title": "VPN drops hourly", "version": 1}, headers=auth(user)
        )
        assert first.status_code == 200
        assert first.json()["message"] == "Ticket updated successfully"
        assert first.json()["ticket"]["version"] == 2

        second = await async_client.patch(
            url, json={"title": "VPN drops daily", "version": 1}, headers=auth(user)
        )
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_patch_ignores_fields_outside_role(self, async_client, make_user, auth):
        user = await make_user(Role.USER)
        ticket = await _create(async_client, auth(user))

        response = await async_client.patch(
            f"/api/tickets/{ticket['id']}",
            json={"status": "resolved", "created_by": str(uuid4()), "priority": "low"},
            headers=auth(user),
        )

        assert response.status_code == 200
        body = response.json()["ticket"]
        assert body["status"] == "open"
        assert body["priority"] == "low"
        assert body["created_by"]["id"] == str(user.id)

    @pytest.mark.asyncio
    async def test_patch_drops_malformed_fields_outside_role(self, async_client, make_user, auth):
        user = await make_user(Role.USER)
        agent = await make_user(Role.AGENT)
        ticket = await _create(async_client, auth(user))
        url = f"/api/tickets/{ticket['id']}"

        response = await async_client.patch(
            url, json={"status": "closed", "title": "New VPN title"}, headers=auth(user)
        )
        assert response.status_code == 200
        body = response.json()["ticket"]
        assert body["title"] == "New VPN title"
        assert body["status"] == "open"

        response = await async_client.patch(
            url,
            json={"status": None, "assigned_to": "nobody", "description": "Drops only on office wifi"},
            headers=auth(user),
        )
        assert response.status_code == 200
        body = response.json()["ticket"]
        assert body["description"] == "Drops only on office wifi"
        assert body["assigned_to"]["id"] == str(agent.id)
        assert body["version"] == 3

    @pytest.mark.asyncio
    async def test_patch_validates_fields_within_role(self, async_client, make_user, auth):
        user = await make_user(Role.USER)
        agent = await make_user(Role.AGENT)
        ticket = await _create(async_client, auth(user))
        url = f"/api/tickets/{ticket['id']}"

        response = await async_client.patch(url, json={"status": "closed"}, headers=auth(agent))
        assert response.status_code == 400
        assert response.json()["error"]["field"] == "status"

        response = await async_client.patch(url, json={"title": None}, headers=auth(user))
        assert response.status_code == 400
        assert response.json()["error"]["field"] == "title"

        response = await async_client.patch(url, json={"version": "latest"}, headers=auth(user))
        assert response.status_code == 400
        assert response.json()["error"]["field"] == "version"

    @pytest.mark.asyncio
    async def test_agent_resolves_ticket(self, async_client, make_user, auth, clock):
        user = await make_user(Role.USER)
        agent = await make_user(Role.AGENT)
        ticket = await _create(async_client, auth(user))

        clock.advance(hours=2)
        response = await async_client.patch(
            f"/api/tickets/{ticket['id']}", json={"status": "resolved"}, headers=auth(agent)
        )

        body = response.json()["ticket"]
        assert body["status"] == "resolved"
        assert body["sla_status"] == "resolved"
        assert body["resolved_at"] is not None

    @pytest.mark.asyncio
    async def test_list_envelope_and_filters(self, async_client, make_user, auth, clock):
        user = await make_user(Role.USER)
        for i in range(3):
            await _create(async_client, auth(user), {**TICKET, "title": f"Broken laptop {i}"})
            clock.advance(minutes=1)

        response = await async_client.get(
            "/api/tickets/", params={"limit": 2, "q": "LAPTOP"}, headers=auth(user)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["limit"] == 2
        assert body["offset"] == 0
        assert body["next_offset"] == 2
        assert [t["title"] for t in body["items"]] == ["Broken laptop 2", "Broken laptop 1"]
        assert body["items"][0]["comments"] == []

    @pytest.mark.asyncio
    async def test_list_rejects_oversized_page(self, async_client, make_user, auth):
        user = await make_user(Role.USER)

        response = await async_client.get("/api/tickets/", params={"limit": 101}, headers=auth(user))

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "limit"

    @pytest.mark.asyncio
    async def test_list_rejects_unknown_status(self, async_client, make_user, auth):
        user = await make_user(Role.USER)

        response = await async_client.get("/api/tickets/", params={"status": "closed"}, headers=auth(user))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestServiceRoutes:
    @pytest.mark.asyncio
    async def test_health(self, async_client):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert set(response.json()["checks"]) == {"database", "sla_scheduler"}

    @pytest.mark.asyncio
    async def test_unknown_route_uses_envelope(self, async_client):
        response = await async_client.get("/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
