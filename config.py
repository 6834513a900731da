from dotenv import load_dotenv
load_dotenv()

import os

# MongoDB
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/").strip()
DB_NAME = os.getenv("MONGODB_DB", "Momentum").strip()
TASKS_COLLECTION = os.getenv("MONGODB_COLLECTION", "tasks").strip()
USERS_COLLECTION = os.getenv("MONGODB_USERS_COLLECTION", "users").strip()
REWARDS_COLLECTION = os.getenv("MONGODB_REWARDS_COLLECTION", "reward_transfers").strip()

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "momentum-secret-key-change-in-production").strip()
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_DAYS = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

# Gemini
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "").strip()
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-pro").strip()
GEMINI_URL = f"https://generativelanguage.googleapis.com/v1/models/{GEMINI_MODEL}:generateContent"
GEMINI_TIMEOUT_SECONDS = int(os.getenv("GEMINI_TIMEOUT_SECONDS", "30"))

# Chain (Sepolia)
SEPOLIA_RPC_URL = os.getenv("SEPOLIA_RPC_URL", "").strip()
PRIVATE_KEY = os.getenv("PRIVATE_KEY", "").strip()
REWARDER_PRIVATE_KEY = os.getenv("REWARDER_PRIVATE_KEY", "").strip()
CONTRACT_ADDRESS = os.getenv("NEXT_PUBLIC_CONTRACT_ADDRESS", "").strip()
MOM_TOKEN_ADDRESS = os.getenv("NEXT_PUBLIC_MOM_TOKEN_ADDRESS", "").strip()
TX_TIMEOUT_SECONDS = int(os.getenv("TX_TIMEOUT_SECONDS", "120"))
TOKEN_DECIMALS = 18
EXPLORER_TX_URL = "https://sepolia.etherscan.io/tx/"

# Server
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# Mongo keys (task schema)
KEY_ID = "id"
KEY_CONTENT = "content"
KEY_DESCRIPTION = "description"
KEY_COMPLETED = "completed"
KEY_CREATED = "createdAt"
KEY_COMPLETED_AT = "completedAt"
KEY_PRIORITY = "priority"
KEY_DUE_DATE = "dueDate"
KEY_TASK_TYPE = "taskType"
KEY_STATUS = "status"
KEY_TAGS = "tags"
KEY_USER_ADDRESS = "userAddress"
KEY_VERIFIED = "verified"
KEY_VERIFIED_AT = "verifiedAt"
KEY_TASK_HASH = "taskHash"
KEY_HASH_SOURCE = "hashSource"
KEY_TX_HASH = "txHash"

# User schema
KEY_ADDRESS = "address"
KEY_TOKEN_BALANCE = "tokenBalance"
KEY_LAST_LOGIN = "lastLogin"
