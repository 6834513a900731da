"""
GraphQL API
SDL schema plus root resolvers executed with graphql-core
"""

from functools import wraps
from typing import Any, Dict, Optional

from graphql import GraphQLError, build_schema, graphql_sync
from loguru import logger

import auth_service
import reward_service
import task_service
import verification_service
from errors import AuthenticationError, MomentumError, ValidationError
from models import status_from_graphql, status_to_graphql

TYPE_DEFS = """
  enum Priority {
    low
    medium
    high
  }

  enum TaskStatus {
    to_do
    in_progress
    completed
  }

  enum TaskType {
    personal
    work
    study
    other
  }

  type Todo {
    id: ID!
    content: String!
    description: String
    completed: Boolean!
    createdAt: String!
    completedAt: String
    priority: Priority!
    dueDate: String
    tags: [String]
    status: TaskStatus!
    taskType: TaskType!
    verified: Boolean
    txHash: String
    taskHash: String
    userAddress: String
  }

  type User {
    address: String!
    createdAt: String
    lastLogin: String
    tokenBalance: Float
  }

  type AuthPayload {
    token: String!
    user: User
  }

  type TaskStats {
    totalCount: Int!
    completedCount: Int!
    verifiedCount: Int!
    completionPercentage: Int!
    verificationPercentage: Int!
  }

  type RewardTransfer {
    taskId: ID!
    amount: Float!
    txHash: String
    status: String!
    error: String
    createdAt: String
  }

  type ChainTransaction {
    action: String!
    txHash: String!
  }

  type AnchorPayload {
    task: Todo
    transactions: [ChainTransaction]
  }

  type Query {
    getTasks: [Todo]
    getTask(id: ID!): Todo
    getUserBalance: Float
    getTaskStats: TaskStats
    getRewardHistory(limit: Int): [RewardTransfer]
  }

  input TodoInput {
    content: String!
    description: String
    priority: Priority
    dueDate: String
    taskType: TaskType
    tags: [String]
    taskHash: String
  }

  input TodoUpdateInput {
    id: ID!
    content: String
    description: String
    completed: Boolean
    priority: Priority
    dueDate: String
    status: TaskStatus
    taskType: TaskType
    tags: [String]
    verified: Boolean
    txHash: String
  }

  type Mutation {
    login(walletAddress: String!): AuthPayload
    createTask(input: TodoInput!): Todo
    updateTask(input: TodoUpdateInput!): Todo
    deleteTask(id: ID!): Boolean
    completeTask(id: ID!): Todo
    updateUserTokenBalance(amount: Float!): User
    verifyTask(id: ID!, txHash: String): Todo
    anchorTask(id: ID!): AnchorPayload
  }
"""

schema = build_schema(TYPE_DEFS)


def _to_graphql(task: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if task is None:
        return None
    return {**task, "status": status_to_graphql(task.get("status"))}


def _from_graphql(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {k: v for k, v in data.items() if v is not None}
    if "status" in cleaned:
        cleaned["status"] = status_from_graphql(cleaned["status"])
    return cleaned


def _user_address(info) -> str:
    address = info.context.get("userAddress")
    if not address:
        raise AuthenticationError("Authentication required")
    return address


def resolver(failure_message: str):
    """Turn service errors into GraphQL errors and hide unexpected ones"""
    def decorator(fn):
        @wraps(fn)
        def wrapper(info, **kwargs):
            try:
                return fn(info, **kwargs)
            except MomentumError as e:
                raise GraphQLError(e.message, extensions={"status": e.status})
            except Exception:
                logger.exception(f"❌ {failure_message}")
                raise GraphQLError(failure_message, extensions={"status": 500})
        return wrapper
    return decorator


# Query

@resolver("Error fetching tasks")
def get_tasks(info):
    return [_to_graphql(t) for t in task_service.get_user_tasks(_user_address(info))]

@resolver("Error fetching task")
def get_task(info, id):
    return _to_graphql(task_service.get_task(_user_address(info), id))

@resolver("Error fetching user balance")
def get_user_balance(info):
    return auth_service.get_user_balance(_user_address(info))

@resolver("Error fetching task stats")
def get_task_stats(info):
    return task_service.get_task_stats(_user_address(info))

@resolver("Error fetching reward history")
def get_reward_history(info, limit=None):
    if limit is None:
        limit = reward_service.DEFAULT_HISTORY_LIMIT
    return reward_service.get_reward_history(_user_address(info), limit=limit)


# Mutation

@resolver("Login failed")
def login(info, walletAddress):
    return auth_service.login(walletAddress)

@resolver("Error creating task")
def create_task(info, input):
    return _to_graphql(task_service.create_task(_user_address(info), _from_graphql(input)))

@resolver("Error updating task")
def update_task(info, input):
    address = _user_address(info)
    updates = _from_graphql(input)
    task_id = updates.pop("id", None)
    if not task_id:
        raise ValidationError("Task ID is required")
    return _to_graphql(task_service.update_task(address, task_id, updates))

@resolver("Error deleting task")
def delete_task(info, id):
    return task_service.delete_task(_user_address(info), id)

@resolver("Error completing task")
def complete_task(info, id):
    return _to_graphql(task_service.complete_task(_user_address(info), id))

@resolver("Failed to update token balance")
def update_user_token_balance(info, amount):
    return auth_service.update_user_token_balance(_user_address(info), amount)

@resolver("Error verifying task")
def verify_task(info, id, txHash=None):
    return _to_graphql(verification_service.verify_task(_user_address(info), id, txHash))

@resolver("Error anchoring task")
def anchor_task(info, id):
    result = verification_service.anchor_task(_user_address(info), id)
    return {"task": _to_graphql(result["task"]), "transactions": result["transactions"]}


ROOT_VALUE = {
    "getTasks": get_tasks,
    "getTask": get_task,
    "getUserBalance": get_user_balance,
    "getTaskStats": get_task_stats,
    "getRewardHistory": get_reward_history,
    "login": login,
    "createTask": create_task,
    "updateTask": update_task,
    "deleteTask": delete_task,
    "completeTask": complete_task,
    "updateUserTokenBalance": update_user_token_balance,
    "verifyTask": verify_task,
    "anchorTask": anchor_task,
}


def create_context(authorization: Optional[str]) -> Dict[str, Any]:
    return {"userAddress": auth_service.optional_address_from_header(authorization)}


def execute(body: Dict[str, Any], authorization: Optional[str] = None) -> Dict[str, Any]:
    """Run one GraphQL request body ({query, variables, operationName})"""
    query = body.get("query")
    if not query or not isinstance(query, str):
        raise ValidationError("GraphQL query is required")

    result = graphql_sync(
        schema,
        query,
        root_value=ROOT_VALUE,
        context_value=create_context(authorization),
        variable_values=body.get("variables") or None,
        operation_name=body.get("operationName"),
    )
    return result.formatted
