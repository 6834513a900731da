import uuid

import pytest

import task_service
from db import tasks_col
from errors import DuplicateTaskError, TaskNotFoundError, TaskStateError, ValidationError
from ledger import compute_task_hash
from task_service import (
    complete_task, create_task, delete_task, get_task, get_task_stats,
    get_user_tasks, set_task_fields, update_task
)


def test_create_task_defaults(alice):
    task = create_task(alice, {"content": "  Buy milk  "})

    assert uuid.UUID(task["id"])
    assert task["content"] == "Buy milk"
    assert task["description"] == ""
    assert task["status"] == "to-do"
    assert task["completed"] is False
    assert task["verified"] is False
    assert task["priority"] == "medium"
    assert task["taskType"] == "personal"
    assert task["tags"] == ["personal"]
    assert task["userAddress"] == alice
    assert task["createdAt"].endswith("Z")
    assert task["hashSource"] == "server"
    assert task["taskHash"] == compute_task_hash(task)
    assert "_id" not in task
    assert get_task(alice, task["id"])["taskHash"] == task["taskHash"]


def test_priority_comes_from_suggestion(alice):
    task = create_task(alice, {"content": "Urgent: renew passport", "priority": "low"})
    assert task["priority"] == "high"
    assert task["aiSuggestion"]["source"] == "keywords"


def test_ai_tips_are_appended_to_tags(alice, monkeypatch):
    monkeypatch.setattr(task_service, "analyze_task", lambda task: {
        "suggestedPriority": "low",
        "tips": ["Split it up", "work"],
        "reasoning": "r",
        "motivation": "m",
        "source": "gemini",
    })
    task = create_task(alice, {"content": "Report", "taskType": "work"})
    assert task["tags"] == ["work", "Split it up"]
    assert task["priority"] == "low"


@pytest.mark.parametrize("data, message", [
    ({}, "Task content is required"),
    ({"content": "   "}, "Task content is required"),
    ({"content": "x", "priority": "urgent"}, "Invalid priority"),
    ({"content": "x", "taskType": "chores"}, "Invalid taskType"),
    ({"content": "x", "tags": "one"}, "Tags must be a list"),
])
def test_create_task_validation(alice, data, message):
    with pytest.raises(ValidationError, match=message):
        create_task(alice, data)


def test_client_supplied_hash(alice):
    task = create_task(alice, {"content": "Read book", "taskHash": "0xABCDEF"})
    assert task["taskHash"] == "0xabcdef"
    assert task["hashSource"] == "client"

    with pytest.raises(DuplicateTaskError):
        create_task(alice, {"content": "Something else", "taskHash": "0xabcdef"})
    assert tasks_col().count_documents({}) == 1


def test_tasks_are_scoped_to_owner(alice, bob):
    mine = create_task(alice, {"content": "Mine"})
    create_task(bob, {"content": "Theirs"})

    assert [t["content"] for t in get_user_tasks(alice)] == ["Mine"]
    with pytest.raises(TaskNotFoundError):
        get_task(bob, mine["id"])
    with pytest.raises(TaskNotFoundError):
        update_task(bob, mine["id"], {"content": "stolen"})
    with pytest.raises(TaskNotFoundError):
        delete_task(bob, mine["id"])


def test_status_drives_completion(alice):
    task = create_task(alice, {"content": "Laundry"})

    done = update_task(alice, task["id"], {"status": "completed"})
    assert done["completed"] is True
    assert done["completedAt"]

    back = update_task(alice, task["id"], {"status": "in-progress", "completed": True})
    assert back["status"] == "in-progress"
    assert back["completed"] is False
    assert back["completedAt"] is None

    with pytest.raises(ValidationError, match="Invalid status"):
        update_task(alice, task["id"], {"status": "done"})


def test_completed_flag_alone(alice):
    task = create_task(alice, {"content": "Dishes"})
    done = update_task(alice, task["id"], {"completed": True})
    assert done["status"] == "completed"

    undone = update_task(alice, task["id"], {"completed": False})
    assert undone["status"] == "to-do"
    assert undone["completedAt"] is None


def test_content_edit_rehashes(alice):
    task = create_task(alice, {"content": "Draft"})
    edited = update_task(alice, task["id"], {"content": "Final draft", "description": "v2"})

    assert edited["taskHash"] != task["taskHash"]
    assert edited["taskHash"] == compute_task_hash(edited)


def test_client_hash_survives_content_edit(alice):
    task = create_task(alice, {"content": "Draft", "taskHash": "0x1234"})
    edited = update_task(alice, task["id"], {"content": "Final draft"})
    assert edited["taskHash"] == "0x1234"


def test_verified_task_content_is_frozen(alice):
    task = create_task(alice, {"content": "Ship it"})
    set_task_fields(alice, task["id"], {"verified": True, "completed": True, "status": "completed"})

    with pytest.raises(TaskStateError):
        update_task(alice, task["id"], {"content": "Ship something else"})
    assert update_task(alice, task["id"], {"priority": "high"})["priority"] == "high"


def test_uncompleting_clears_verification(alice):
    task = create_task(alice, {"content": "Ship it"})
    set_task_fields(alice, task["id"], {
        "verified": True, "txHash": "0x01", "completed": True, "status": "completed",
    })

    reopened = update_task(alice, task["id"], {"status": "to-do"})
    assert reopened["verified"] is False
    assert reopened["txHash"] is None


def test_protected_fields_are_ignored(alice, bob):
    task = create_task(alice, {"content": "Keep"})
    updated = update_task(alice, task["id"], {"userAddress": bob, "taskHash": "0xbad", "tags": ["a"]})

    assert updated["userAddress"] == alice
    assert updated["taskHash"] == task["taskHash"]
    assert updated["tags"] == ["a"]


def test_complete_and_delete(alice):
    task = create_task(alice, {"content": "Finish"})
    done = complete_task(alice, task["id"])
    assert done["status"] == "completed" and done["completed"] is True

    assert delete_task(alice, task["id"]) is True
    with pytest.raises(TaskNotFoundError):
        delete_task(alice, task["id"])
    with pytest.raises(ValidationError):
        delete_task(alice, "")


def test_stats(alice):
    assert get_task_stats(alice)["completionPercentage"] == 0

    ids = [create_task(alice, {"content": f"Task {i}"})["id"] for i in range(4)]
    complete_task(alice, ids[0])
    complete_task(alice, ids[1])
    update_task(alice, ids[2], {"status": "in-progress"})
    set_task_fields(alice, ids[0], {"verified": True})

    stats = get_task_stats(alice)
    assert stats["totalCount"] == 4
    assert stats["completedCount"] == 2
    assert stats["verifiedCount"] == 1
    assert stats["completionPercentage"] == 50
    assert stats["verificationPercentage"] == 50
    assert stats["byStatus"] == {"to-do": 1, "in-progress": 1, "completed": 2}
