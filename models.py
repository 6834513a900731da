"""
Task model
Allowed enum values, defaults and helpers shared by the REST and GraphQL layers
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from errors import ValidationError

PRIORITIES = ("low", "medium", "high")
TASK_STATUSES = ("to-do", "in-progress", "completed")
TASK_TYPES = ("personal", "work", "study", "other")

DEFAULT_PRIORITY = "medium"
DEFAULT_STATUS = "to-do"
DEFAULT_TASK_TYPE = "personal"

# Fields a client may change through PUT /api/tasks or updateTask
UPDATABLE_FIELDS = {
    "content", "description", "completed", "completedAt", "priority",
    "dueDate", "status", "taskType", "tags", "verified", "txHash",
}

# GraphQL enum values cannot contain "-"
_STATUS_TO_GRAPHQL = {"to-do": "to_do", "in-progress": "in_progress", "completed": "completed"}
_STATUS_FROM_GRAPHQL = {v: k for k, v in _STATUS_TO_GRAPHQL.items()}


def now_iso() -> str:
    """UTC timestamp in the same shape as JavaScript's Date.toISOString()"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def check_choice(field: str, value: Any, allowed) -> str:
    if value not in allowed:
        raise ValidationError(f"Invalid {field}: {value!r} (expected one of {', '.join(allowed)})")
    return value


def status_to_graphql(status: Optional[str]) -> Optional[str]:
    if status is None:
        return None
    return _STATUS_TO_GRAPHQL.get(status, status)


def status_from_graphql(status: Optional[str]) -> Optional[str]:
    if status is None:
        return None
    return _STATUS_FROM_GRAPHQL.get(status, status)


def public_task(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Strip the Mongo _id so the document can be returned as JSON"""
    if doc is None:
        return None
    task = dict(doc)
    task.pop("_id", None)
    return task
