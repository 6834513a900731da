"""
Verification Service
Reconciles off-chain task state with the TaskManager ledger before a task is marked verified
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from config import (
    KEY_COMPLETED, KEY_TASK_HASH, KEY_HASH_SOURCE, KEY_VERIFIED,
    KEY_VERIFIED_AT, KEY_TX_HASH, KEY_STATUS
)
from errors import ChainError, HashMismatchError, TaskNotFoundError, TaskStateError
from ledger import compute_task_hash, get_ledger, normalize_hash
from models import now_iso
from reward_service import reward_for_task
from task_service import HASH_SERVER, get_task, set_task_fields


def _checked_hash(task: Dict[str, Any]) -> str:
    """The task's stored hash, after checking it still matches the content"""
    stored = normalize_hash(task.get(KEY_TASK_HASH))
    if not stored:
        raise TaskStateError("Task has no hash")

    if task.get(KEY_HASH_SOURCE, HASH_SERVER) == HASH_SERVER:
        expected = normalize_hash(compute_task_hash(task))
        if expected != stored:
            raise HashMismatchError(expected, stored)
    return stored


def check_verifiable(task: Dict[str, Any], tx_hash: Optional[str] = None) -> str:
    """
    Raise unless the ledger agrees with task; returns the task hash.
    1. Task must be completed off-chain and its hash must match its content
    2. The given transaction (if any) must have been mined successfully
    3. The ledger record must exist, carry the same hash and be completed
    Never writes.
    """
    if not task.get(KEY_COMPLETED):
        raise TaskStateError("Task must be completed before verification")

    task_hash = _checked_hash(task)
    ledger = get_ledger()

    if tx_hash:
        ledger.wait_for_transaction(tx_hash)

    record = ledger.get_task_status(task_hash)
    if record is None:
        raise TaskStateError("Task not recorded on-chain")
    if normalize_hash(record.hash) != task_hash:
        raise HashMismatchError(task_hash, record.hash)
    if not record.completed:
        raise TaskStateError("Task not completed on-chain")
    return task_hash


def verify_task(user_address: str, task_id: str, tx_hash: Optional[str] = None) -> Dict[str, Any]:
    """Mark a task verified once the ledger agrees with it, then reward the owner"""
    task = get_task(user_address, task_id)
    if task.get(KEY_VERIFIED):
        return task

    task_hash = check_verifiable(task, tx_hash)

    verified = set_task_fields(
        user_address, task_id,
        {KEY_VERIFIED: True, KEY_TX_HASH: tx_hash or task.get(KEY_TX_HASH), KEY_VERIFIED_AT: now_iso()},
        extra_filter={KEY_VERIFIED: {"$ne": True}},
    )
    if verified is None:
        # Another request verified it first
        return get_task(user_address, task_id)

    logger.info(f"🔐 Task verified: {task_id} ({task_hash[:10]}...)")
    reward = reward_for_task(user_address, verified)
    verified = get_task(user_address, task_id)
    verified["reward"] = reward
    return verified


def anchor_task(user_address: str, task_id: str) -> Dict[str, Any]:
    """
    Record the task on the ledger with the relayer key:
    createTask when the hash is unknown, completeTask when the task is
    completed off-chain but not on-chain.
    """
    task = get_task(user_address, task_id)
    task_hash = _checked_hash(task)
    ledger = get_ledger()
    transactions: List[Dict[str, Any]] = []

    record = ledger.get_task_status(task_hash)
    if record is None:
        created = ledger.create_task(task_hash)
        transactions.append({"action": "createTask", **created})
        logger.info(f"⛓️ Task anchored: {task_id} → {created['txHash']}")
        record = ledger.get_task_status(task_hash)
        if record is None:
            raise ChainError("Task missing on-chain after createTask")

    if task.get(KEY_COMPLETED) and not record.completed:
        completed = ledger.complete_task(task_hash)
        transactions.append({"action": "completeTask", **completed})
        logger.info(f"⛓️ Task completion anchored: {task_id} → {completed['txHash']}")

    if transactions:
        updated = set_task_fields(user_address, task_id, {KEY_TX_HASH: transactions[-1]["txHash"]})
        if updated is None:
            raise TaskNotFoundError(task_id)
        task = updated

    return {"task": task, "transactions": transactions}


def reconcile_task(user_address: str, task_id: str) -> Dict[str, Any]:
    """Side-by-side view of off-chain and on-chain state; never writes"""
    task = get_task(user_address, task_id)
    stored = normalize_hash(task.get(KEY_TASK_HASH))

    content_matches = True
    if task.get(KEY_HASH_SOURCE, HASH_SERVER) == HASH_SERVER and stored:
        content_matches = normalize_hash(compute_task_hash(task)) == stored

    record = get_ledger().get_task_status(stored) if stored else None
    on_chain = {
        "exists": record is not None,
        "completed": bool(record and record.completed),
        "hash": record.hash if record else None,
        "timestamp": record.timestamp if record else None,
    }
    off_chain = {
        "status": task.get(KEY_STATUS),
        "completed": bool(task.get(KEY_COMPLETED)),
        "verified": bool(task.get(KEY_VERIFIED)),
        "txHash": task.get(KEY_TX_HASH),
        "contentMatchesHash": content_matches,
    }

    if off_chain["verified"]:
        consistent = content_matches and on_chain["exists"] and on_chain["completed"] \
            and normalize_hash(on_chain["hash"]) == stored
    else:
        consistent = content_matches and not (on_chain["completed"] and not off_chain["completed"])

    return {"taskHash": stored, "offChain": off_chain, "onChain": on_chain, "consistent": consistent}
