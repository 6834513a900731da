from loguru import logger
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection

from config import (
    MONGODB_URI, DB_NAME,
    TASKS_COLLECTION, USERS_COLLECTION,
    REWARDS_COLLECTION,
    KEY_ID, KEY_USER_ADDRESS, KEY_TASK_HASH, KEY_ADDRESS
)

_client_singleton = None

def get_client() -> MongoClient:
    global _client_singleton
    if _client_singleton is None:
        if not MONGODB_URI:
            raise RuntimeError("Missing MONGODB_URI in .env")
        _client_singleton = MongoClient(MONGODB_URI, serverSelectionTimeoutMS=5000)
    return _client_singleton

def set_client(client) -> None:
    """Swap the process-wide client (tests install a mongomock client here)."""
    global _client_singleton
    _client_singleton = client

def tasks_col() -> Collection:
    c = get_client()
    return c[DB_NAME][TASKS_COLLECTION]

def users_col() -> Collection:
    c = get_client()
    return c[DB_NAME][USERS_COLLECTION]

def rewards_col() -> Collection:
    c = get_client()
    return c[DB_NAME][REWARDS_COLLECTION]

def ping() -> bool:
    get_client().admin.command("ping")
    return True

def ensure_indexes() -> None:
    tasks = tasks_col()
    tasks.create_index([(KEY_ID, ASCENDING)], unique=True)
    tasks.create_index([(KEY_USER_ADDRESS, ASCENDING)])
    tasks.create_index([(KEY_TASK_HASH, ASCENDING)], unique=True, sparse=True)
    users_col().create_index([(KEY_ADDRESS, ASCENDING)], unique=True)
    rewards_col().create_index([(KEY_USER_ADDRESS, ASCENDING)])
    rewards_col().create_index([("status", ASCENDING)])
    logger.info(f"📊 Indexes ensured on database {DB_NAME}")
