"""
REST routes
Maps (method, path) to service calls and converts errors into JSON responses
"""

import json
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from loguru import logger

import auth_service
import graphql_api
import reward_service
import task_service
import verification_service
from errors import MomentumError, ValidationError

Response = Tuple[int, Dict[str, Any]]


class Request:
    def __init__(self, method: str, path: str, headers: Dict[str, str], body: bytes = b""):
        parts = urlsplit(path)
        self.method = method.upper()
        self.path = parts.path.rstrip("/") or "/"
        self.query = {k: v[0] for k, v in parse_qs(parts.query).items()}
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.body = body or b""

    @property
    def authorization(self) -> Optional[str]:
        return self.headers.get("authorization")

    def json(self) -> Dict[str, Any]:
        if not self.body:
            return {}
        try:
            data = json.loads(self.body)
        except ValueError:
            raise ValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise ValidationError("JSON body must be an object")
        return data

    def user_address(self) -> str:
        return auth_service.address_from_header(self.authorization)


# /api/auth

def login(req: Request) -> Response:
    data = req.json()
    return 200, auth_service.login(data.get("walletAddress"))


# /api/tasks

def list_tasks(req: Request) -> Response:
    return 200, {"tasks": task_service.get_user_tasks(req.user_address())}

def create_task(req: Request) -> Response:
    address = req.user_address()
    return 200, {"task": task_service.create_task(address, req.json())}

def update_task(req: Request) -> Response:
    address = req.user_address()
    data = req.json()
    task_id = data.pop("id", None)
    if not task_id:
        raise ValidationError("Task ID is required")
    return 200, {"task": task_service.update_task(address, task_id, data)}

def delete_task(req: Request) -> Response:
    address = req.user_address()
    task_id = req.query.get("id")
    if not task_id:
        raise ValidationError("Task ID is required")
    task_service.delete_task(address, task_id)
    return 200, {"success": True}

def task_stats(req: Request) -> Response:
    return 200, {"stats": task_service.get_task_stats(req.user_address())}

def verify_task(req: Request) -> Response:
    address = req.user_address()
    data = req.json()
    if not data.get("id"):
        raise ValidationError("Task ID is required")
    return 200, {"task": verification_service.verify_task(address, data["id"], data.get("txHash"))}

def anchor_task(req: Request) -> Response:
    address = req.user_address()
    data = req.json()
    if not data.get("id"):
        raise ValidationError("Task ID is required")
    return 200, verification_service.anchor_task(address, data["id"])

def reconcile_task(req: Request) -> Response:
    address = req.user_address()
    task_id = req.query.get("id")
    if not task_id:
        raise ValidationError("Task ID is required")
    return 200, {"report": verification_service.reconcile_task(address, task_id)}


# /api/rewards

def rewards(req: Request) -> Response:
    address = req.user_address()
    limit = req.query.get("limit", str(reward_service.DEFAULT_HISTORY_LIMIT))
    if not limit.isdigit():
        raise ValidationError("limit must be a positive integer")
    return 200, {
        "history": reward_service.get_reward_history(address, limit=int(limit)),
        "total": reward_service.get_total_rewards(address),
        "balance": reward_service.get_on_chain_balance(address),
    }


# /api/graphql

def graphql_get(req: Request) -> Response:
    return 200, {"message": "GraphQL endpoint is running. Use POST for GraphQL queries."}

def graphql_post(req: Request) -> Response:
    return 200, graphql_api.execute(req.json(), req.authorization)


ROUTES: Dict[Tuple[str, str], Tuple[Callable[[Request], Response], str]] = {
    ("POST", "/api/auth/login"): (login, "Login failed"),
    ("GET", "/api/tasks"): (list_tasks, "Error fetching tasks"),
    ("POST", "/api/tasks"): (create_task, "Error creating task"),
    ("PUT", "/api/tasks"): (update_task, "Error updating task"),
    ("DELETE", "/api/tasks"): (delete_task, "Error deleting task"),
    ("GET", "/api/tasks/stats"): (task_stats, "Error fetching task stats"),
    ("POST", "/api/tasks/verify"): (verify_task, "Error verifying task"),
    ("POST", "/api/tasks/anchor"): (anchor_task, "Error anchoring task"),
    ("GET", "/api/tasks/reconcile"): (reconcile_task, "Error reconciling task"),
    ("GET", "/api/rewards"): (rewards, "Error fetching rewards"),
    ("GET", "/api/graphql"): (graphql_get, "GraphQL request failed"),
    ("POST", "/api/graphql"): (graphql_post, "GraphQL request failed"),
}


def dispatch(method: str, path: str, headers: Dict[str, str], body: bytes = b"") -> Response:
    req = Request(method, path, headers, body)

    route = ROUTES.get((req.method, req.path))
    if route is None:
        if any(p == req.path for _, p in ROUTES):
            return 405, {"error": "Method not allowed"}
        return 404, {"error": "Not found"}

    handler, failure_message = route
    try:
        return handler(req)
    except MomentumError as e:
        if e.status >= 500:
            logger.error(f"❌ {failure_message}: {e.message}")
        else:
            logger.info(f"{req.method} {req.path} → {e.status}: {e.message}")
        return e.status, {"error": e.message}
    except Exception:
        logger.exception(f"❌ {failure_message}")
        return 500, {"error": failure_message}
