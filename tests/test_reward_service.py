import pytest

import ledger
import reward_service
from auth_service import get_user_balance
from db import rewards_col
from errors import ChainError, ValidationError
from reward_service import (
    get_on_chain_balance, get_reward_history, get_total_rewards,
    reward_amount, reward_for_task
)
from task_service import create_task, get_task


@pytest.mark.parametrize("task_type, priority, amount", [
    ("personal", "low", 5),
    ("work", "high", 30),
    ("study", "medium", 15),
    ("other", "high", 15),
    ("chores", "high", 5),
    ("work", None, 5),
])
def test_reward_table(task_type, priority, amount):
    assert reward_amount(task_type, priority) == amount


def test_reward_is_sent_and_logged(alice, fake_token):
    task = create_task(alice, {"content": "Study for exam", "taskType": "study"})
    result = reward_for_task(alice, task)

    assert result["status"] == "completed"
    assert result["amount"] == 25.0
    assert fake_token.sent == [(alice, 25.0)]
    assert get_user_balance(alice) == 25.0

    transfer = rewards_col().find_one({"taskId": task["id"]})
    assert transfer["status"] == "completed"
    assert transfer["txHash"] == result["txHash"]
    assert get_task(alice, task["id"])["rewardAmount"] == 25.0


def test_failed_transfer_is_recorded(alice, fake_token):
    fake_token.fail_with = ChainError("Token contract error: reverted")
    task = create_task(alice, {"content": "Walk dog"})
    result = reward_for_task(alice, task)

    assert result["status"] == "failed"
    assert "reverted" in result["error"]
    assert get_user_balance(alice) == 0.0
    assert get_task(alice, task["id"])["rewardStatus"] == "failed"
    assert get_task(alice, task["id"])["rewardAmount"] == 0.0


def test_missing_token_contract(alice, monkeypatch):
    ledger.set_token(None)
    monkeypatch.setattr(ledger, "MOM_TOKEN_ADDRESS", "")
    task = create_task(alice, {"content": "Walk dog"})

    assert reward_for_task(alice, task)["status"] == "no_contract"
    assert get_on_chain_balance(alice) == "0"


def test_history_and_totals(alice, fake_token):
    tasks = [create_task(alice, {"content": f"Chore {i}"}) for i in range(3)]
    reward_for_task(alice, tasks[0])
    reward_for_task(alice, tasks[1])
    fake_token.fail_with = ChainError("boom")
    reward_for_task(alice, tasks[2])

    history = get_reward_history(alice)
    assert len(history) == 3
    assert all("_id" not in h for h in history)
    assert len(get_reward_history(alice, limit=2)) == 2
    assert get_total_rewards(alice) == 20.0
    assert get_on_chain_balance(alice) == "20.0"


def test_history_limit_bounds(alice, monkeypatch):
    tasks = [create_task(alice, {"content": f"Errand {i}"}) for i in range(4)]
    for task in tasks:
        reward_for_task(alice, task)

    monkeypatch.setattr(reward_service, "MAX_HISTORY_LIMIT", 3)
    assert len(get_reward_history(alice, limit=100)) == 3
    for bad in (0, -1, "5", True):
        with pytest.raises(ValidationError, match="positive integer"):
            get_reward_history(alice, limit=bad)


def test_already_rewarded_task_is_skipped(alice, fake_token):
    task = create_task(alice, {"content": "Study for exam", "taskType": "study"})
    first = reward_for_task(alice, task)
    second = reward_for_task(alice, task)

    assert second == {"amount": 25.0, "status": "completed", "txHash": first["txHash"], "error": None}
    assert len(fake_token.sent) == 1
    assert rewards_col().count_documents({"taskId": task["id"]}) == 1
