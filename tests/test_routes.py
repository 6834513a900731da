import json

import task_service
from routes import dispatch
from conftest import ALICE, bearer


def call(method, path, headers=None, body=None):
    raw = json.dumps(body).encode() if body is not None else b""
    return dispatch(method, path, headers or {}, raw)


def test_login():
    status, payload = call("POST", "/api/auth/login", body={"walletAddress": ALICE})
    assert status == 200
    assert payload["token"]
    assert payload["user"]["address"] == ALICE


def test_login_requires_wallet():
    assert call("POST", "/api/auth/login", body={}) == (400, {"error": "Wallet address is required"})


def test_tasks_require_bearer_token():
    assert call("GET", "/api/tasks") == (401, {"error": "Authentication required"})
    assert call("GET", "/api/tasks", {"Authorization": "Bearer junk"}) == (401, {"error": "Invalid token"})


def test_task_crud(alice):
    headers = bearer(alice)

    status, created = call("POST", "/api/tasks", headers, {"content": "Write tests", "taskType": "work"})
    assert status == 200
    task_id = created["task"]["id"]

    status, listed = call("GET", "/api/tasks", headers)
    assert status == 200
    assert [t["id"] for t in listed["tasks"]] == [task_id]

    status, updated = call("PUT", "/api/tasks", headers, {"id": task_id, "status": "in-progress"})
    assert status == 200
    assert updated["task"]["status"] == "in-progress"

    status, stats = call("GET", "/api/tasks/stats", headers)
    assert stats["stats"]["byStatus"]["in-progress"] == 1

    assert call("DELETE", f"/api/tasks?id={task_id}", headers) == (200, {"success": True})
    assert call("DELETE", f"/api/tasks?id={task_id}", headers) == (404, {"error": "Task not found"})


def test_task_request_validation(alice):
    headers = bearer(alice)
    assert call("POST", "/api/tasks", headers, {"description": "no content"}) == \
        (400, {"error": "Task content is required"})
    assert call("PUT", "/api/tasks", headers, {"status": "completed"}) == (400, {"error": "Task ID is required"})
    assert call("DELETE", "/api/tasks", headers) == (400, {"error": "Task ID is required"})

    status, payload = dispatch("POST", "/api/tasks", headers, b"{not json")
    assert (status, payload) == (400, {"error": "Invalid JSON body"})


def test_duplicate_task_is_conflict(alice):
    headers = bearer(alice)
    call("POST", "/api/tasks", headers, {"content": "A", "taskHash": "0x01"})
    assert call("POST", "/api/tasks", headers, {"content": "B", "taskHash": "0x01"}) == \
        (409, {"error": "Task already exists"})


def test_verify_endpoint(alice, fake_ledger):
    headers = bearer(alice)
    _, created = call("POST", "/api/tasks", headers, {"content": "Ship"})
    task = created["task"]

    status, payload = call("POST", "/api/tasks/verify", headers, {"id": task["id"]})
    assert status == 409

    call("PUT", "/api/tasks", headers, {"id": task["id"], "status": "completed"})
    fake_ledger.create_task(task["taskHash"])
    fake_ledger.complete_task(task["taskHash"])

    status, payload = call("POST", "/api/tasks/verify", headers, {"id": task["id"], "txHash": "0xabc"})
    assert status == 200
    assert payload["task"]["verified"] is True

    status, payload = call("GET", f"/api/tasks/reconcile?id={task['id']}", headers)
    assert status == 200
    assert payload["report"]["consistent"] is True


def test_anchor_endpoint(alice):
    headers = bearer(alice)
    _, created = call("POST", "/api/tasks", headers, {"content": "Anchor"})
    status, payload = call("POST", "/api/tasks/anchor", headers, {"id": created["task"]["id"]})
    assert status == 200
    assert payload["transactions"][0]["action"] == "createTask"


def test_rewards_endpoint(alice):
    status, payload = call("GET", "/api/rewards?limit=5", bearer(alice))
    assert status == 200
    assert payload == {"history": [], "total": 0.0, "balance": "0"}
    assert call("GET", "/api/rewards?limit=-1", bearer(alice))[0] == 400
    assert call("GET", "/api/rewards?limit=0", bearer(alice)) == (400, {"error": "limit must be a positive integer"})


def test_unexpected_errors_are_generic(alice, monkeypatch):
    def boom(address):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(task_service, "get_user_tasks", boom)
    assert call("GET", "/api/tasks", bearer(alice)) == (500, {"error": "Error fetching tasks"})


def test_unknown_routes():
    assert call("GET", "/api/nope") == (404, {"error": "Not found"})
    assert call("PATCH", "/api/tasks") == (405, {"error": "Method not allowed"})


def test_graphql_over_http(alice):
    status, payload = call("GET", "/api/graphql")
    assert status == 200 and "POST" in payload["message"]

    status, payload = call("POST", "/api/graphql", bearer(alice), {"query": "{ getUserBalance }"})
    assert status == 200
    assert payload == {"data": {"getUserBalance": 0.0}}

    assert call("POST", "/api/graphql", body={})[0] == 400
