"""Tests for managed account endpoints."""
from uuid import uuid4

import pytest

CREDENTIALS = {"username": "shop-owner", "password": "hunter2"}


@pytest.fixture
def cast(client, make_user, admin_token, auth):
    """Owner with one account, its manager, an unrelated manager and the admin."""
    owner, owner_token = make_user(role="owner")
    manager, manager_token = make_user(role="manager")
    _, stranger_token = make_user(role="manager")

    response = client.post(
        "/api/accounts/submit",
        json={"account_type": "shopify", "credentials": CREDENTIALS, "management_instructions": "Be nice"},
        headers=auth(owner_token),
    )
    assert response.status_code == 201, response.text
    account = response.json()["data"]

    response = client.post(
        f"/api/accounts/{account['id']}/manager",
        json={"manager_id": manager["id"]},
        headers=auth(owner_token),
    )
    assert response.status_code == 200, response.text

    return {
        "account": account,
        "owner": owner,
        "manager": manager,
        "owner_token": owner_token,
        "manager_token": manager_token,
        "stranger_token": stranger_token,
        "admin_token": admin_token,
    }


class TestSubmit:
    def test_submit_starts_pending(self, cast):
        account = cast["account"]
        assert account["status"] == "pending"
        assert account["owner_id"] == cast["owner"]["id"]
        assert account["credentials"] == CREDENTIALS

    def test_client_status_is_ignored(self, client, make_user, auth):
        _, token = make_user()
        response = client.post(
            "/api/accounts/submit",
            json={"account_type": "etsy", "status": "active"},
            headers=auth(token),
        )
        assert response.status_code == 201
        assert response.json()["data"]["status"] == "pending"

    def test_managers_cannot_submit(self, client, cast, auth):
        response = client.post("/api/accounts/submit", json={"account_type": "etsy"}, headers=auth(cast["manager_token"]))
        assert response.status_code == 403

    def test_account_type_required(self, client, make_user, auth):
        _, token = make_user()
        response = client.post("/api/accounts/submit", json={"account_type": "  "}, headers=auth(token))
        assert response.status_code == 400
        assert "Please provide account type" in response.json()["error"]


class TestRead:
    def test_lists_never_include_credentials(self, client, cast, auth):
        for url, token in (
            ("/api/accounts/owner", cast["owner_token"]),
            ("/api/accounts/manager", cast["manager_token"]),
            ("/api/accounts/", cast["admin_token"]),
        ):
            response = client.get(url, headers=auth(token))
            assert response.status_code == 200, url
            body = response.json()
            assert body["count"] == 1
            assert "credentials" not in body["data"][0]

    def test_detail_includes_credentials(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}"
        for token in (cast["owner_token"], cast["manager_token"], cast["admin_token"]):
            response = client.get(url, headers=auth(token))
            assert response.status_code == 200
            assert response.json()["data"]["credentials"] == CREDENTIALS

    def test_stranger_is_forbidden(self, client, cast, auth):
        response = client.get(f"/api/accounts/{cast['account']['id']}", headers=auth(cast["stranger_token"]))
        assert response.status_code == 403
        assert response.json()["error"] == "You are not authorized to access this account"

    def test_owner_cannot_list_manager_accounts(self, client, cast, auth):
        assert client.get("/api/accounts/manager", headers=auth(cast["owner_token"])).status_code == 403

    def test_admin_listing_is_admin_only(self, client, cast, auth):
        assert client.get("/api/accounts/", headers=auth(cast["owner_token"])).status_code == 403

    def test_missing_account(self, client, cast, auth):
        response = client.get(f"/api/accounts/{uuid4()}", headers=auth(cast["admin_token"]))
        assert response.status_code == 404
        assert response.json()["error"] == "Account not found"

    def test_malformed_id(self, client, cast, auth):
        response = client.get("/api/accounts/not-a-uuid", headers=auth(cast["admin_token"]))
        assert response.status_code == 400


class TestStatus:
    def test_only_admin_activates(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/status"
        for token in (cast["owner_token"], cast["manager_token"]):
            response = client.put(url, json={"status": "active"}, headers=auth(token))
            assert response.status_code == 403
            assert response.json()["error"] == "Only administrators can activate accounts"

        response = client.put(url, json={"status": "active"}, headers=auth(cast["admin_token"]))
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "active"

    def test_owner_and_manager_may_suspend(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/status"
        assert client.put(url, json={"status": "suspended"}, headers=auth(cast["manager_token"])).status_code == 200
        assert client.put(url, json={"status": "completed"}, headers=auth(cast["owner_token"])).status_code == 200

    def test_stranger_cannot_change_status(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/status"
        response = client.put(url, json={"status": "suspended"}, headers=auth(cast["stranger_token"]))
        assert response.status_code == 403
        assert response.json()["error"] == "You are not authorized to update this account status"

    def test_invalid_status(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/status"
        response = client.put(url, json={"status": "archived"}, headers=auth(cast["admin_token"]))
        assert response.status_code == 400

    def test_update_endpoint_also_guards_activation(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}"
        response = client.put(url, json={"status": "active"}, headers=auth(cast["owner_token"]))
        assert response.status_code == 403


class TestUpdate:
    def test_owner_updates_fields(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}"
        response = client.put(
            url,
            json={"account_type": "shopify-plus", "credentials": {"token": "abc"}},
            headers=auth(cast["owner_token"]),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["account_type"] == "shopify-plus"
        assert data["credentials"] == {"token": "abc"}
        assert data["owner_id"] == cast["owner"]["id"]

    def test_manager_cannot_update_fields(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}"
        response = client.put(url, json={"account_type": "x"}, headers=auth(cast["manager_token"]))
        assert response.status_code == 403

    def test_owner_id_is_not_writable(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}"
        response = client.put(url, json={"owner_id": str(uuid4())}, headers=auth(cast["admin_token"]))
        assert response.status_code == 400

    def test_instructions(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/instructions"
        response = client.put(url, json={"instructions": "Reply fast"}, headers=auth(cast["owner_token"]))
        assert response.status_code == 200
        assert response.json()["data"]["management_instructions"] == "Reply fast"

        assert client.put(url, json={"instructions": "x"}, headers=auth(cast["manager_token"])).status_code == 403
        assert client.put(url, json={"instructions": " "}, headers=auth(cast["owner_token"])).status_code == 400


class TestManagerAssignment:
    def test_assign_owner_is_rejected(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/manager"
        response = client.post(url, json={"manager_id": cast["owner"]["id"]}, headers=auth(cast["owner_token"]))
        assert response.status_code == 400
        assert response.json()["error"] == "The user you are trying to assign is not a manager"

    def test_assign_unknown_user(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/manager"
        response = client.post(url, json={"manager_id": str(uuid4())}, headers=auth(cast["owner_token"]))
        assert response.status_code == 404

    def test_manager_cannot_reassign(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/manager"
        response = client.post(url, json={"manager_id": cast["manager"]["id"]}, headers=auth(cast["manager_token"]))
        assert response.status_code == 403

    def test_unassign(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}/manager"
        response = client.delete(url, headers=auth(cast["owner_token"]))
        assert response.status_code == 200
        assert response.json()["data"]["manager_id"] is None

        # The former manager loses access
        response = client.get(f"/api/accounts/{cast['account']['id']}", headers=auth(cast["manager_token"]))
        assert response.status_code == 403


class TestDelete:
    def test_owner_deletes(self, client, cast, auth):
        url = f"/api/accounts/{cast['account']['id']}"
        assert client.delete(url, headers=auth(cast["manager_token"])).status_code == 403

        response = client.delete(url, headers=auth(cast["owner_token"]))
        assert response.status_code == 200
        assert response.json()["message"] == "Account deleted successfully"
        assert client.get(url, headers=auth(cast["admin_token"])).status_code == 404
