# BASE

class MomentumError(Exception):
    """ Base class for errors that a route boundary turns into a JSON error response """
    status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

# REQUEST EXCEPTIONS

class ValidationError(MomentumError):
    """ This exception is raised when a request is missing a required field or carries an invalid value """
    status = 400

class AuthenticationError(MomentumError):
    """ This exception is raised when the bearer token is missing or invalid """
    status = 401

# TASK EXCEPTIONS

class TaskNotFoundError(MomentumError):
    """ This exception is raised when the task does not exist for the requesting address """
    status = 404

    def __init__(self, task_id=None):
        super().__init__("Task not found")
        self.task_id = task_id

class DuplicateTaskError(MomentumError):
    """ This exception is raised when a task with the same id or hash already exists """
    status = 409

    def __init__(self, task_hash=None):
        super().__init__("Task already exists")
        self.task_hash = task_hash

class TaskStateError(MomentumError):
    """ This exception is raised when a task is not in a state that allows the operation """
    status = 409

class HashMismatchError(MomentumError):
    """ This exception is raised when the off-chain task hash does not match the expected hash """
    status = 409

    def __init__(self, expected, actual):
        super().__init__(f"Task hash mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual

# CHAIN EXCEPTIONS

class ChainError(MomentumError):
    """ This exception is raised when a contract call reverts or the RPC node fails """
    status = 502

class ChainNotConfiguredError(MomentumError):
    """ This exception is raised when the RPC URL, contract address or signing key is not configured """
    status = 503

    def __init__(self, missing):
        super().__init__(f"Blockchain not configured: missing {missing}")
        self.missing = missing
