"""
Task Service
Handles task CRUD operations, status transitions and dashboard statistics
"""

import uuid
from typing import Any, Dict, List, Optional

from loguru import logger
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from config import (
    KEY_ID, KEY_CONTENT, KEY_DESCRIPTION, KEY_COMPLETED, KEY_CREATED,
    KEY_COMPLETED_AT, KEY_PRIORITY, KEY_DUE_DATE, KEY_TASK_TYPE, KEY_STATUS,
    KEY_TAGS, KEY_USER_ADDRESS, KEY_VERIFIED, KEY_VERIFIED_AT, KEY_TASK_HASH,
    KEY_HASH_SOURCE, KEY_TX_HASH
)
from db import tasks_col
from errors import DuplicateTaskError, TaskNotFoundError, TaskStateError, ValidationError
from ledger import compute_task_hash, normalize_hash
from models import (
    PRIORITIES, TASK_STATUSES, TASK_TYPES, UPDATABLE_FIELDS,
    DEFAULT_PRIORITY, DEFAULT_STATUS, DEFAULT_TASK_TYPE,
    check_choice, now_iso, public_task
)
from priority_service import analyze_task

HASH_SERVER = "server"
HASH_CLIENT = "client"


def _clean_tags(tags: Any) -> List[str]:
    if tags is None:
        return []
    if not isinstance(tags, list):
        raise ValidationError("Tags must be a list of strings")
    return [str(t).strip() for t in tags if str(t).strip()]


def create_task(user_address: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create a new task, asking the AI for a priority and hashing it"""
    content = str(data.get(KEY_CONTENT) or "").strip()
    if not content:
        raise ValidationError("Task content is required")

    task_type = check_choice("taskType", data.get(KEY_TASK_TYPE) or DEFAULT_TASK_TYPE, TASK_TYPES)
    priority = check_choice("priority", data.get(KEY_PRIORITY) or DEFAULT_PRIORITY, PRIORITIES)
    tags = _clean_tags(data.get(KEY_TAGS)) or [task_type]

    task = {
        KEY_ID: str(uuid.uuid4()),
        KEY_CONTENT: content,
        KEY_DESCRIPTION: str(data.get(KEY_DESCRIPTION) or ""),
        KEY_COMPLETED: False,
        KEY_CREATED: now_iso(),
        KEY_COMPLETED_AT: None,
        KEY_PRIORITY: priority,
        KEY_DUE_DATE: data.get(KEY_DUE_DATE),
        KEY_TASK_TYPE: task_type,
        KEY_STATUS: DEFAULT_STATUS,
        KEY_TAGS: tags,
        KEY_USER_ADDRESS: user_address,
        KEY_VERIFIED: False,
        KEY_TX_HASH: None,
    }

    analysis = analyze_task(task)
    task[KEY_PRIORITY] = analysis["suggestedPriority"]
    task[KEY_TAGS] = tags + [tip for tip in analysis["tips"] if tip not in tags]
    task["aiSuggestion"] = {
        "reasoning": analysis["reasoning"],
        "motivation": analysis["motivation"],
        "source": analysis["source"],
    }

    if data.get(KEY_TASK_HASH):
        task[KEY_TASK_HASH] = normalize_hash(data[KEY_TASK_HASH])
        task[KEY_HASH_SOURCE] = HASH_CLIENT
    else:
        task[KEY_TASK_HASH] = compute_task_hash(task)
        task[KEY_HASH_SOURCE] = HASH_SERVER

    tasks = tasks_col()
    if tasks.find_one({KEY_TASK_HASH: task[KEY_TASK_HASH]}, {"_id": 1}):
        raise DuplicateTaskError(task[KEY_TASK_HASH])
    try:
        tasks.insert_one(dict(task))
    except DuplicateKeyError as e:
        raise DuplicateTaskError(task[KEY_TASK_HASH]) from e

    logger.info(f"✅ Task created: {task[KEY_ID]} ({task[KEY_PRIORITY]}, via {analysis['source']})")
    return task


def get_user_tasks(user_address: str) -> List[Dict[str, Any]]:
    """Get all tasks for a wallet, newest first"""
    cursor = tasks_col().find({KEY_USER_ADDRESS: user_address}, {"_id": 0}).sort(KEY_CREATED, DESCENDING)
    return list(cursor)


def find_task(user_address: str, task_id: str) -> Optional[Dict[str, Any]]:
    return tasks_col().find_one({KEY_ID: task_id, KEY_USER_ADDRESS: user_address}, {"_id": 0})


def get_task(user_address: str, task_id: str) -> Dict[str, Any]:
    if not task_id:
        raise ValidationError("Task ID is required")
    task = find_task(user_address, task_id)
    if not task:
        raise TaskNotFoundError(task_id)
    return task


def set_task_fields(user_address: str, task_id: str, fields: Dict[str, Any],
                    extra_filter: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """$set fields on one task, returns the updated task or None when nothing matched"""
    query = {KEY_ID: task_id, KEY_USER_ADDRESS: user_address}
    if extra_filter:
        query.update(extra_filter)
    result = tasks_col().find_one_and_update(
        query,
        {"$set": fields},
        return_document=ReturnDocument.AFTER,
    )
    return public_task(result)


def _status_fields(status: str, completed_at: Optional[str] = None) -> Dict[str, Any]:
    if status == "completed":
        return {KEY_STATUS: status, KEY_COMPLETED: True, KEY_COMPLETED_AT: completed_at or now_iso()}
    return {KEY_STATUS: status, KEY_COMPLETED: False, KEY_COMPLETED_AT: None}


def update_task(user_address: str, task_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a partial update
    - status drives completed/completedAt
    - verified=true goes through hash reconciliation
    - content edits re-hash unverified server-hashed tasks
    """
    task = get_task(user_address, task_id)

    ignored = set(updates) - UPDATABLE_FIELDS - {KEY_ID}
    if ignored:
        logger.debug(f"Ignoring non-updatable fields on {task_id}: {sorted(ignored)}")

    changes = {k: updates[k] for k in UPDATABLE_FIELDS if k in updates}
    verified = changes.pop(KEY_VERIFIED, None)
    tx_hash = changes.pop(KEY_TX_HASH, None)

    if KEY_CONTENT in changes:
        changes[KEY_CONTENT] = str(changes[KEY_CONTENT] or "").strip()
        if not changes[KEY_CONTENT]:
            raise ValidationError("Task content cannot be empty")
    if KEY_DESCRIPTION in changes:
        changes[KEY_DESCRIPTION] = str(changes[KEY_DESCRIPTION] or "")
    if KEY_PRIORITY in changes:
        check_choice("priority", changes[KEY_PRIORITY], PRIORITIES)
    if KEY_TASK_TYPE in changes:
        check_choice("taskType", changes[KEY_TASK_TYPE], TASK_TYPES)
    if KEY_TAGS in changes:
        changes[KEY_TAGS] = _clean_tags(changes[KEY_TAGS])

    completed_at = changes.pop(KEY_COMPLETED_AT, None)
    if KEY_STATUS in changes:
        status = check_choice("status", changes.pop(KEY_STATUS), TASK_STATUSES)
        changes.pop(KEY_COMPLETED, None)
        changes.update(_status_fields(status, completed_at))
    elif KEY_COMPLETED in changes:
        if bool(changes.pop(KEY_COMPLETED)):
            changes.update(_status_fields("completed", completed_at))
        elif task.get(KEY_COMPLETED):
            changes.update(_status_fields(DEFAULT_STATUS))

    content_changed = any(
        k in changes and changes[k] != task.get(k) for k in (KEY_CONTENT, KEY_DESCRIPTION)
    )
    if content_changed:
        if task.get(KEY_VERIFIED):
            raise TaskStateError("Cannot edit the content of a verified task")
        if task.get(KEY_HASH_SOURCE, HASH_SERVER) == HASH_SERVER:
            merged = {**task, **changes}
            new_hash = compute_task_hash(merged)
            clash = tasks_col().find_one({KEY_TASK_HASH: new_hash, KEY_ID: {"$ne": task_id}}, {"_id": 1})
            if clash:
                raise DuplicateTaskError(new_hash)
            changes[KEY_TASK_HASH] = new_hash

    # A task that is no longer completed cannot stay verified
    if changes.get(KEY_COMPLETED) is False and task.get(KEY_VERIFIED):
        verified = False

    if verified is False:
        changes.update({KEY_VERIFIED: False, KEY_TX_HASH: None, KEY_VERIFIED_AT: None})
    elif tx_hash is not None and not verified:
        changes[KEY_TX_HASH] = tx_hash

    # Nothing is written unless the merged task passes reconciliation
    if verified and not task.get(KEY_VERIFIED):
        # Deferred import: verification_service builds on this module
        from verification_service import check_verifiable
        check_verifiable({**task, **changes}, tx_hash)

    if changes:
        try:
            updated = set_task_fields(user_address, task_id, changes)
        except DuplicateKeyError as e:
            raise DuplicateTaskError(changes.get(KEY_TASK_HASH)) from e
        if not updated:
            raise TaskNotFoundError(task_id)
        task = updated

    if verified:
        from verification_service import verify_task
        task = verify_task(user_address, task_id, tx_hash)

    return task


def complete_task(user_address: str, task_id: str) -> Dict[str, Any]:
    """Mark task as completed"""
    get_task(user_address, task_id)
    updated = set_task_fields(user_address, task_id, _status_fields("completed"))
    if not updated:
        raise TaskNotFoundError(task_id)
    logger.info(f"🏁 Task completed: {task_id}")
    return updated


def delete_task(user_address: str, task_id: str) -> bool:
    if not task_id:
        raise ValidationError("Task ID is required")
    result = tasks_col().delete_one({KEY_ID: task_id, KEY_USER_ADDRESS: user_address})
    if result.deleted_count == 0:
        raise TaskNotFoundError(task_id)
    logger.info(f"🗑️ Task deleted: {task_id}")
    return True


def get_task_stats(user_address: str) -> Dict[str, Any]:
    """Completion and verification counters for the dashboard"""
    tasks = get_user_tasks(user_address)
    total = len(tasks)
    completed = sum(1 for t in tasks if t.get(KEY_COMPLETED))
    verified = sum(1 for t in tasks if t.get(KEY_VERIFIED))

    by_status = {status: 0 for status in TASK_STATUSES}
    for t in tasks:
        status = t.get(KEY_STATUS)
        if status in by_status:
            by_status[status] += 1

    return {
        "totalCount": total,
        "completedCount": completed,
        "verifiedCount": verified,
        "completionPercentage": round(completed / total * 100) if total else 0,
        "verificationPercentage": min(100, round(verified / completed * 100)) if completed else 0,
        "byStatus": by_status,
    }
