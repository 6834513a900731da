"""
Reward Service
Handles MOM token rewards for verified tasks and the reward transfer log
"""

from typing import Any, Dict, List

from loguru import logger
from pymongo import DESCENDING

from auth_service import update_user_token_balance
from config import KEY_ID, KEY_TASK_TYPE, KEY_PRIORITY, KEY_USER_ADDRESS
from db import rewards_col
from errors import ChainError, ChainNotConfiguredError, ValidationError
from ledger import get_token
from models import now_iso
from task_service import find_task, set_task_fields

DEFAULT_REWARD = 5.0

REWARD_AMOUNTS = {
    "personal": {"low": 5, "medium": 10, "high": 15},
    "work": {"low": 10, "medium": 20, "high": 30},
    "study": {"low": 8, "medium": 15, "high": 25},
    "other": {"low": 5, "medium": 10, "high": 15},
}

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_NO_CONTRACT = "no_contract"

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200


def reward_amount(task_type: str, priority: str) -> float:
    return float(REWARD_AMOUNTS.get(task_type, {}).get(priority, DEFAULT_REWARD))


def reward_for_task(user_address: str, task: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reward a verified task end-to-end:
    1. Determine reward amount from task type and priority
    2. Log a pending transfer
    3. Send MOM tokens from the rewarder wallet
    4. Update transfer, task and user records
    Failures are recorded on the transfer and never raised.
    A task that was already paid (or is being paid) is skipped; failed
    payouts may be retried on the next verification.
    """
    claimed = set_task_fields(
        user_address, task[KEY_ID],
        {"rewardStatus": STATUS_PENDING},
        extra_filter={"rewardStatus": {"$nin": [STATUS_PENDING, STATUS_COMPLETED]}},
    )
    if claimed is None:
        current = find_task(user_address, task[KEY_ID]) or task
        logger.info(f"Task {task[KEY_ID]} already rewarded, skipping payout")
        return {
            "amount": current.get("rewardAmount", 0.0),
            "status": current.get("rewardStatus"),
            "txHash": current.get("rewardTxHash"),
            "error": None,
        }

    amount = reward_amount(task.get(KEY_TASK_TYPE), task.get(KEY_PRIORITY))
    transfers = rewards_col()
    transfer_id = transfers.insert_one({
        KEY_USER_ADDRESS: user_address,
        "taskId": task[KEY_ID],
        "amount": amount,
        "txHash": None,
        "status": STATUS_PENDING,
        "error": None,
        "createdAt": now_iso(),
    }).inserted_id

    status, tx_hash, error = STATUS_PENDING, None, None
    try:
        tx_hash = get_token().reward(user_address, amount)
        status = STATUS_COMPLETED
        logger.info(f"💰 Rewarded {amount} MOM → {user_address[:8]}... ({tx_hash})")
    except ChainNotConfiguredError as e:
        status, error = STATUS_NO_CONTRACT, e.message
        logger.warning(f"⚠️ Reward skipped: {e.message}")
    except (ChainError, ValueError) as e:
        status, error = STATUS_FAILED, str(e)
        logger.error(f"❌ Failed to send reward for task {task[KEY_ID]}: {e}")
    except Exception as e:
        status, error = STATUS_FAILED, str(e) or type(e).__name__
        logger.exception(f"❌ Unexpected error sending reward for task {task[KEY_ID]}")

    transfers.update_one(
        {"_id": transfer_id},
        {"$set": {"status": status, "txHash": tx_hash, "error": error, "updatedAt": now_iso()}},
    )

    if status == STATUS_COMPLETED:
        try:
            update_user_token_balance(user_address, amount)
        except ValidationError as e:
            logger.warning(f"⚠️ Error updating user tokens: {e}")

    set_task_fields(user_address, task[KEY_ID], {
        "rewardAmount": amount if status == STATUS_COMPLETED else 0.0,
        "rewardStatus": status,
        "rewardTxHash": tx_hash,
    })

    return {"amount": amount, "status": status, "txHash": tx_hash, "error": error}


def get_reward_history(user_address: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Dict[str, Any]]:
    """Get a wallet's reward/transfer history, newest first (1 to MAX_HISTORY_LIMIT rows)"""
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError("limit must be a positive integer")
    limit = min(limit, MAX_HISTORY_LIMIT)
    transfers = list(
        rewards_col().find({KEY_USER_ADDRESS: user_address}, {"_id": 0})
        .sort("createdAt", DESCENDING)
        .limit(limit)
    )
    return transfers


def get_total_rewards(user_address: str) -> float:
    """Total MOM successfully sent to a wallet"""
    result = list(rewards_col().aggregate([
        {"$match": {KEY_USER_ADDRESS: user_address, "status": STATUS_COMPLETED}},
        {"$group": {"_id": None, "total": {"$sum": "$amount"}}},
    ]))
    return float(result[0]["total"]) if result else 0.0


def get_on_chain_balance(user_address: str) -> str:
    try:
        return get_token().balance_of(user_address)
    except ChainNotConfiguredError:
        return "0"
