# TaskManager: task-hash ledger keyed by hash, ownership by msg.sender
TASK_MANAGER_ABI = [
    {
        "type": "function",
        "name": "createTask",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "taskHash", "type": "string"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "completeTask",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "taskHash", "type": "string"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "verifyTask",
        "stateMutability": "view",
        "inputs": [{"name": "taskHash", "type": "string"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "isTaskCompleted",
        "stateMutability": "view",
        "inputs": [{"name": "taskHash", "type": "string"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "getTaskStatus",
        "stateMutability": "view",
        "inputs": [{"name": "taskId", "type": "string"}],
        "outputs": [
            {"name": "exists", "type": "bool"},
            {"name": "completed", "type": "bool"},
            {"name": "hash", "type": "string"},
            {"name": "timestamp", "type": "uint256"},
        ],
    },
    {
        "type": "event",
        "name": "TaskCreated",
        "anonymous": False,
        "inputs": [
            {"name": "taskHash", "type": "string", "indexed": False},
            {"name": "owner", "type": "address", "indexed": True},
        ],
    },
    {
        "type": "event",
        "name": "TaskCompleted",
        "anonymous": False,
        "inputs": [
            {"name": "taskHash", "type": "string", "indexed": False},
        ],
    },
]

# MOMToken: ERC20 reward token with owner-only and public reward entry points
MOM_TOKEN_ABI = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "owner",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "rewardTo",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "publicRewardTo",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
]
