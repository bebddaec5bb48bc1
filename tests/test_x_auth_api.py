"""Tests for the /api/x endpoints."""

import pytest

from app.core.config import settings


async def _start(api_client, **body):
    resp = await api_client.post(
        "/api/x/request-token", json={"userId": "u1", "isLogin": False, **body}
    )
    assert resp.status_code == 200
    return resp.json()


class TestRequestToken:
    @pytest.mark.asyncio
    async def test_returns_auth_url_and_state(self, api_client, state_service):
        body = await _start(api_client, origin="https://postai.test")

        assert set(body) == {"authUrl", "state"}
        assert f"state={body['state']}" in body["authUrl"]
        stored = await state_service.get_state(body["state"])
        assert stored.origin == "https://postai.test"

    @pytest.mark.asyncio
    async def test_origin_falls_back_to_referer(self, api_client, state_service):
        resp = await api_client.post(
            "/api/x/request-token",
            json={"userId": "u1", "isLogin": False},
            headers={"Referer": "https://app.postai.test/settings?tab=x"},
        )

        stored = await state_service.get_state(resp.json()["state"])
        assert stored.origin == "https://app.postai.test"

    @pytest.mark.asyncio
    async def test_origin_falls_back_to_callback_url(self, api_client, state_service):
        body = await _start(api_client)

        stored = await state_service.get_state(body["state"])
        assert stored.origin == "https://postai.test"

    @pytest.mark.asyncio
    async def test_missing_user_id(self, api_client):
        resp = await api_client.post("/api/x/request-token", json={"isLogin": False})

        assert resp.status_code == 400
        assert resp.json() == {"error": "User ID is required for authorization"}


class TestAccessToken:
    @pytest.mark.asyncio
    async def test_round_trip(self, api_client):
        started = await _start(api_client)

        resp = await api_client.post(
            "/api/x/access-token", json={"code": "anycode", "state": started["state"]}
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "username": "alice",
            "userId": "42",
            "action": "link",
            "profileImageUrl": "https://pbs.twimg.com/profile_images/alice.jpg",
        }

    @pytest.mark.asyncio
    async def test_missing_state(self, api_client):
        resp = await api_client.post("/api/x/access-token", json={"code": "x"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing code or state parameter"}

    @pytest.mark.asyncio
    async def test_invalid_state_in_prod(self, api_client):
        resp = await api_client.post("/api/x/access-token", json={"code": "x", "state": "nope"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid or expired state parameter"}

    @pytest.mark.asyncio
    async def test_invalid_state_in_dev_lists_recent_states(self, api_client, dev_env):
        await _start(api_client)

        resp = await api_client.post("/api/x/access-token", json={"code": "x", "state": "nope"})

        body = resp.json()
        assert resp.status_code == 400
        assert len(body["recentStates"]) == 1
        assert set(body["recentStates"][0]) == {"statePrefix", "isLogin", "createdAt", "expired"}

    @pytest.mark.asyncio
    async def test_exchange_failure_exposes_provider_details(self, api_client, fake_twitter):
        fake_twitter.token_status = 400
        fake_twitter.token_body = {"error": "invalid_grant"}
        started = await _start(api_client)

        resp = await api_client.post(
            "/api/x/access-token", json={"code": "bad", "state": started["state"]}
        )

        body = resp.json()
        assert resp.status_code == 500
        assert body["error"] == "Authentication failed"
        assert "invalid_grant" in body["details"]

    @pytest.mark.asyncio
    async def test_upstream_unavailable(self, api_client, fake_twitter):
        fake_twitter.raise_on = {"/2/users/me"}
        started = await _start(api_client)

        resp = await api_client.post(
            "/api/x/access-token", json={"code": "c", "state": started["state"]}
        )

        assert resp.status_code == 504

    @pytest.mark.asyncio
    async def test_save_failure_keeps_tokens_out_of_response(
        self, api_client, failing_inserts, log_messages
    ):
        started = await _start(api_client)

        resp = await api_client.post(
            "/api/x/access-token", json={"code": "c", "state": started["state"]}
        )

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "Failed to save linked account",
            "details": "IntegrityError",
        }
        logged = "".join(log_messages)
        for secret in ("user-access-token", "user-refresh-token"):
            assert secret not in resp.text
            assert secret not in logged


class TestLinkedAccount:
    @pytest.mark.asyncio
    async def test_linked_account_hides_tokens(self, api_client):
        started = await _start(api_client)
        await api_client.post("/api/x/access-token", json={"code": "c", "state": started["state"]})

        resp = await api_client.get("/api/x/accounts/u1")

        body = resp.json()
        assert resp.status_code == 200
        assert body["data"]["username"] == "alice"
        assert body["data"]["providerUserId"] == "42"
        assert "user-access-token" not in resp.text
        assert "user-refresh-token" not in resp.text

    @pytest.mark.asyncio
    async def test_no_linked_account(self, api_client):
        resp = await api_client.get("/api/x/accounts/nobody")

        assert resp.status_code == 404
        assert resp.json()["status"] == "error"


class TestDebug:
    @pytest.mark.asyncio
    async def test_hidden_in_prod(self, api_client):
        resp = await api_client.get("/api/x/debug")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_reports_configuration_without_secrets(self, api_client, dev_env):
        resp = await api_client.get("/api/x/debug")

        data = resp.json()["data"]
        assert resp.status_code == 200
        assert data["clientIdSet"] is True
        assert data["clientSecretSet"] is True
        assert data["challengeMethod"] == "S256"
        assert settings.twitter_client_secret not in resp.text
