import itertools

import mongomock
import pytest

import auth_service
import db
import ledger
import priority_service
from errors import ChainError
from ledger import OnChainTask, normalize_hash

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
RELAYER = "0x" + "c3" * 20


class FakeLedger:
    """In-memory TaskManager that enforces the contract's revert rules"""

    def __init__(self):
        self.records = {}
        self.sender = RELAYER
        self.account = object()
        self.failed_txs = set()
        self.waited = []
        self.hash_override = {}
        self._counter = itertools.count(1)

    def _tx(self):
        return f"0x{next(self._counter):064x}"

    def create_task(self, task_hash):
        key = normalize_hash(task_hash)
        if key in self.records:
            raise ChainError("Task already exists")
        self.records[key] = {"owner": self.sender, "completed": False, "timestamp": 1700000000}
        return {"txHash": self._tx(), "events": [{"event": "TaskCreated", "taskHash": task_hash, "owner": self.sender}]}

    def complete_task(self, task_hash):
        record = self.records.get(normalize_hash(task_hash))
        if record is None:
            raise ChainError("Task does not exist")
        if record["completed"]:
            raise ChainError("Task is already completed")
        if record["owner"] != self.sender:
            raise ChainError("Only the task owner can complete this task")
        record["completed"] = True
        return {"txHash": self._tx(), "events": [{"event": "TaskCompleted", "taskHash": task_hash}]}

    def verify_task(self, task_hash):
        return normalize_hash(task_hash) in self.records

    def is_task_completed(self, task_hash):
        record = self.records.get(normalize_hash(task_hash))
        return bool(record and record["completed"])

    def get_task_status(self, task_hash):
        key = normalize_hash(task_hash)
        record = self.records.get(key)
        if record is None:
            return None
        return OnChainTask(
            exists=True,
            completed=record["completed"],
            hash=self.hash_override.get(key, key),
            timestamp=record["timestamp"],
        )

    def wait_for_transaction(self, tx_hash):
        self.waited.append(tx_hash)
        if tx_hash in self.failed_txs:
            raise ChainError(f"Transaction {tx_hash} reverted")
        return {"status": 1}


class FakeToken:
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def reward(self, recipient, amount):
        if self.fail_with:
            raise self.fail_with
        self.sent.append((recipient, amount))
        return f"0x{len(self.sent):064x}"

    def balance_of(self, address):
        return str(sum(amount for to, amount in self.sent if to == address))


@pytest.fixture(autouse=True)
def mongo():
    client = mongomock.MongoClient()
    db.set_client(client)
    db.ensure_indexes()
    yield client
    db.set_client(None)


@pytest.fixture(autouse=True)
def fake_ledger():
    fake = FakeLedger()
    ledger.set_ledger(fake)
    yield fake
    ledger.set_ledger(None)


@pytest.fixture(autouse=True)
def fake_token():
    fake = FakeToken()
    ledger.set_token(fake)
    yield fake
    ledger.set_token(None)


@pytest.fixture(autouse=True)
def no_gemini(monkeypatch):
    monkeypatch.setattr(priority_service, "GOOGLE_API_KEY", "")


@pytest.fixture
def alice():
    auth_service.login(ALICE)
    return ALICE


@pytest.fixture
def bob():
    auth_service.login(BOB)
    return BOB


def bearer(address):
    return {"Authorization": f"Bearer {auth_service.create_token(address)}"}
