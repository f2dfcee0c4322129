"""
HTTP tests for the plugin and administrative endpoints
"""

from unittest.mock import patch

import pytest

from tunnelgate.acl import ResultCode
from tunnelgate.storage import SectionFile


def _login(user, token):
    return {
        "version": "0.1.0",
        "op": "Login",
        "content": {"user": user, "metas": {"token": token}}
    }


class TestPluginHandler:
    """Test POST /handler"""

    def test_login_allowed(self, client):
        response = client.post("/handler", json=_login("alice", "tok123"))

        assert response.status_code == 200
        assert response.json() == {"reject": False, "reject_reason": "", "unchange": True}

    def test_login_rejected(self, client):
        response = client.post("/handler", json=_login("alice", "wrong"))

        assert response.status_code == 200
        data = response.json()
        assert data["reject"] is True
        assert data["reject_reason"] == "invalid user or token"

    def test_new_proxy_port_rejected(self, client):
        response = client.post("/handler", json={
            "op": "NewProxy",
            "content": {
                "user": {"user": "alice", "metas": {"token": "tok123"}},
                "proxy_name": "web",
                "proxy_type": "tcp",
                "remote_port": 9090
            }
        })

        assert response.status_code == 200
        assert response.json()["reject"] is True
        assert "port [9090]" in response.json()["reject_reason"]

    def test_ping(self, client):
        response = client.post("/handler", json={
            "op": "Ping",
            "content": {"user": {"user": "alice"}, "timestamp": 1}
        })

        assert response.status_code == 200
        assert response.json()["reject"] is False

    def test_unknown_operation(self, client):
        response = client.post("/handler", json={"op": "CloseProxy", "content": {}})

        assert response.status_code == 400
        assert "unsupported operation" in response.json()["msg"]

    def test_invalid_json(self, client):
        response = client.post(
            "/handler",
            content=b"{not json",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert "msg" in response.json()

    def test_malformed_content(self, client):
        response = client.post("/handler", json={"op": "Login", "content": "alice"})

        assert response.status_code == 400

    def test_unexpected_error_is_500(self, client):
        with patch(
            "tunnelgate.plugin.dispatcher.PluginDispatcher.handle",
            side_effect=RuntimeError("boom")
        ):
            response = client.post("/handler", json=_login("alice", "tok123"))

        assert response.status_code == 500
        assert response.json() == {"msg": "boom"}


class TestQueryTokens:
    """Test GET /tokens"""

    def test_list_all(self, client):
        response = client.get("/tokens")

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == ResultCode.SUCCESS
        assert data["totalCount"] == 3
        assert [item["user"] for item in data["results"]] == ["alice", "bob", "carol"]

    def test_result_fields(self, client):
        data = client.get("/tokens", params={"user": "alice"}).json()

        assert data["results"] == [{
            "user": "alice",
            "token": "tok123",
            "comment": "first user",
            "ports": "8080,8081",
            "domains": "",
            "subdomains": "",
            "status": True
        }]

    def test_filter_and_paginate(self, client):
        data = client.get("/tokens", params={"user": "ali", "page": 1, "limit": 10}).json()

        assert data["totalCount"] == 1
        assert [item["user"] for item in data["results"]] == ["alice"]

    def test_page_beyond_end(self, client):
        data = client.get("/tokens", params={"page": 5, "limit": 2}).json()

        assert data["totalCount"] == 3
        assert data["results"] == []

    def test_disabled_status(self, client):
        data = client.get("/tokens", params={"user": "carol"}).json()

        assert data["results"][0]["status"] is False

    @pytest.mark.parametrize("params", [{"page": "abc"}, {"limit": "1.5"}, {"page": ""}])
    def test_bad_paging_uses_envelope(self, client, params):
        response = client.get("/tokens", params=params)

        assert response.status_code == 200
        assert response.json() == {
            "code": ResultCode.PARAM_ERROR,
            "message": "query tokens failed, param error",
            "totalCount": 0,
            "results": []
        }


class TestMutations:
    """Test the add/update/remove/disable/enable endpoints"""

    def test_add(self, client, seeded_store):
        response = client.post("/add", json={
            "user": "dave",
            "token": "davetoken",
            "comment": "new",
            "ports": "22, 2222"
        })

        assert response.status_code == 200
        assert response.json() == {"success": True, "code": 0, "message": "user add success"}
        assert seeded_store.get("dave").ports == ("22", "2222")

    @pytest.mark.parametrize("body,code", [
        ({"user": "alice", "token": "x"}, ResultCode.USER_EXIST),
        ({"user": " ", "token": "x"}, ResultCode.USER_EMPTY),
        ({"user": "erin", "token": ""}, ResultCode.TOKEN_EMPTY),
        ({"user": ["not", "a", "string"], "token": "x"}, ResultCode.PARAM_ERROR),
        ({"user": "[x]", "token": "x"}, ResultCode.PARAM_ERROR),
        ({"user": "erin", "token": "x\ny"}, ResultCode.PARAM_ERROR),
    ])
    def test_add_failures(self, client, body, code):
        response = client.post("/add", json=body)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["code"] == code

    def test_add_invalid_json(self, client):
        response = client.post(
            "/add",
            content=b"user=alice",
            headers={"Content-Type": "application/json"}
        )

        assert response.json()["code"] == ResultCode.PARAM_ERROR

    def test_add_save_failure(self, client, seeded_store):
        with patch.object(SectionFile, "save", side_effect=OSError("disk full")):
            response = client.post("/add", json={"user": "dave", "token": "davetoken"})

        assert response.json()["code"] == ResultCode.SAVE_ERROR
        assert seeded_store.get("dave") is None

    def test_update(self, client, seeded_store):
        before = client.get("/tokens", params={"user": "alice"}).json()["results"][0]
        after = dict(before, token="rotated", ports="")

        response = client.post("/update", json={"before": before, "after": after})

        assert response.json()["success"] is True
        record = seeded_store.get("alice")
        assert record.token == "rotated"
        assert record.ports == ()

    def test_update_unknown_user(self, client):
        user = {"user": "ghost", "token": "x"}

        response = client.post("/update", json={"before": user, "after": user})

        assert response.json()["code"] == ResultCode.PARAM_ERROR

    def test_update_missing_after(self, client):
        response = client.post("/update", json={"before": {"user": "alice"}})

        assert response.json()["code"] == ResultCode.PARAM_ERROR

    def test_remove(self, client, seeded_store):
        response = client.post("/remove", json={"users": [{"user": "alice"}, {"user": "bob"}]})

        assert response.json()["success"] is True
        assert [record.user for record in seeded_store.records()] == ["carol"]

    def test_disable_then_enable(self, client):
        response = client.post("/disable", json={"users": [{"user": "alice"}]})
        assert response.json()["success"] is True
        assert client.post("/handler", json=_login("alice", "tok123")).json()["reject"] is True

        response = client.post("/enable", json={"users": [{"user": "alice"}]})
        assert response.json()["success"] is True
        assert client.post("/handler", json=_login("alice", "tok123")).json()["reject"] is False

    def test_users_body_required(self, client):
        response = client.post("/disable", json={"user": "alice"})

        assert response.json()["code"] == ResultCode.PARAM_ERROR


class TestAdminAuth:
    """Test optional Basic auth on the admin surface"""

    def test_admin_requires_credentials(self, secured_client):
        assert secured_client.get("/tokens").status_code == 401
        assert secured_client.post("/add", json={"user": "x", "token": "y"}).status_code == 401

    def test_wrong_password(self, secured_client):
        response = secured_client.get("/tokens", auth=("admin", "nope"))

        assert response.status_code == 401

    def test_valid_credentials(self, secured_client):
        response = secured_client.get("/tokens", auth=("admin", "s3cret"))

        assert response.status_code == 200
        assert response.json()["totalCount"] == 3

    def test_plugin_handler_stays_open(self, secured_client):
        response = secured_client.post("/handler", json=_login("alice", "tok123"))

        assert response.status_code == 200
        assert response.json()["reject"] is False


class TestServiceEndpoints:

    def test_healthz(self, client):
        data = client.get("/healthz").json()

        assert data["status"] == "healthy"
        assert data["users"] == 3

    def test_metrics(self, client):
        client.post("/handler", json=_login("alice", "tok123"))

        response = client.get("/metrics/")

        assert response.status_code == 200
        assert "tunnelgate_plugin_requests_total" in response.text
