"""
Ledger
Task hashing plus web3 clients for the TaskManager contract and the MOM reward token
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from eth_account import Account
from loguru import logger
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.logs import DISCARD

from abi import TASK_MANAGER_ABI, MOM_TOKEN_ABI
from config import (
    SEPOLIA_RPC_URL, PRIVATE_KEY, REWARDER_PRIVATE_KEY,
    CONTRACT_ADDRESS, MOM_TOKEN_ADDRESS,
    TX_TIMEOUT_SECONDS, EXPLORER_TX_URL
)
from errors import ChainError, ChainNotConfiguredError, ValidationError
from models import now_iso


@dataclass
class OnChainTask:
    exists: bool
    completed: bool
    hash: str
    timestamp: int


def compute_task_hash(task: Dict[str, Any]) -> str:
    """
    keccak256 over content + description + createdAt + userAddress.
    Must stay byte-for-byte identical to the browser's computation.
    """
    if not task or not task.get("content"):
        raise ValidationError("Task data is incomplete")

    hash_data = "{}{}{}{}".format(
        task["content"],
        task.get("description") or "",
        task.get("createdAt") or now_iso(),
        task.get("userAddress") or "",
    )
    return Web3.to_hex(Web3.keccak(text=hash_data))


def normalize_hash(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        value = Web3.to_hex(value)
    value = str(value or "").strip().lower()
    if value and not value.startswith("0x"):
        value = "0x" + value
    return value


def _revert_reason(e: ContractLogicError) -> str:
    message = getattr(e, "message", None) or str(e)
    return message.replace("execution reverted:", "").strip() or "execution reverted"


class _ContractClient:
    """Shared signing and receipt handling for the contract wrappers"""

    def __init__(self, w3: Web3, address: str, abi, private_key: Optional[str] = None):
        self.w3 = w3
        self.contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        self.account = Account.from_key(private_key) if private_key else None

    def _require_account(self, key_name: str):
        if self.account is None:
            raise ChainNotConfiguredError(key_name)
        return self.account

    def _send(self, fn, label: str) -> Dict[str, Any]:
        account = self.account
        try:
            tx = fn.build_transaction({
                "from": account.address,
                "nonce": self.w3.eth.get_transaction_count(account.address, "pending"),
                "chainId": self.w3.eth.chain_id,
            })
            signed = account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as e:
            raise ChainError(_revert_reason(e)) from e
        except Web3Exception as e:
            raise ChainError(f"{label} failed: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"⛓️ {label} sent: {EXPLORER_TX_URL}{tx_hex}")
        receipt = self.wait_for_transaction(tx_hex)
        return {"txHash": tx_hex, "receipt": receipt}

    def wait_for_transaction(self, tx_hash: str):
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=TX_TIMEOUT_SECONDS)
        except TimeExhausted as e:
            raise ChainError(f"Transaction {tx_hash} not mined after {TX_TIMEOUT_SECONDS}s") from e
        except Web3Exception as e:
            raise ChainError(f"Could not fetch receipt for {tx_hash}: {e}") from e

        if receipt["status"] != 1:
            raise ChainError(f"Transaction {tx_hash} reverted")
        return receipt


class TaskLedger(_ContractClient):
    """TaskManager contract client"""

    def __init__(self, w3: Web3, address: str, private_key: Optional[str] = None):
        super().__init__(w3, address, TASK_MANAGER_ABI, private_key)

    def _call(self, fn):
        try:
            return fn.call()
        except ContractLogicError as e:
            raise ChainError(_revert_reason(e)) from e
        except Web3Exception as e:
            raise ChainError(f"Contract call failed: {e}") from e

    def _events(self, receipt, event_name: str) -> List[Dict[str, Any]]:
        event = getattr(self.contract.events, event_name)()
        return [
            {"event": event_name, **dict(log["args"])}
            for log in event.process_receipt(receipt, errors=DISCARD)
        ]

    def create_task(self, task_hash: str) -> Dict[str, Any]:
        self._require_account("PRIVATE_KEY")
        sent = self._send(self.contract.functions.createTask(task_hash), "createTask")
        return {"txHash": sent["txHash"], "events": self._events(sent["receipt"], "TaskCreated")}

    def complete_task(self, task_hash: str) -> Dict[str, Any]:
        self._require_account("PRIVATE_KEY")
        sent = self._send(self.contract.functions.completeTask(task_hash), "completeTask")
        return {"txHash": sent["txHash"], "events": self._events(sent["receipt"], "TaskCompleted")}

    def verify_task(self, task_hash: str) -> bool:
        return bool(self._call(self.contract.functions.verifyTask(task_hash)))

    def is_task_completed(self, task_hash: str) -> bool:
        return bool(self._call(self.contract.functions.isTaskCompleted(task_hash)))

    def get_task_status(self, task_hash: str) -> Optional[OnChainTask]:
        exists, completed, stored_hash, timestamp = self._call(
            self.contract.functions.getTaskStatus(task_hash)
        )
        if not exists:
            return None
        return OnChainTask(
            exists=bool(exists),
            completed=bool(completed),
            hash=normalize_hash(stored_hash),
            timestamp=int(timestamp),
        )


class MomToken(_ContractClient):
    """MOM reward token client"""

    def __init__(self, w3: Web3, address: str, private_key: Optional[str] = None):
        super().__init__(w3, address, MOM_TOKEN_ABI, private_key)

    def balance_of(self, address: str) -> str:
        """Human-readable balance, "0" when anything goes wrong"""
        try:
            raw = self.contract.functions.balanceOf(Web3.to_checksum_address(address)).call()
        except (Web3Exception, ValueError) as e:
            logger.warning(f"⚠️ Could not read MOM balance for {address}: {e}")
            return "0"
        return str(Web3.from_wei(raw, "ether"))

    def reward(self, recipient: str, amount: float) -> str:
        """
        Transfer amount MOM to recipient, signed by the rewarder key.
        Uses rewardTo when it would succeed, publicRewardTo otherwise.
        """
        account = self._require_account("REWARDER_PRIVATE_KEY")
        recipient = Web3.to_checksum_address(recipient)
        token_amount = Web3.to_wei(Decimal(str(amount)), "ether")

        try:
            balance = self.contract.functions.balanceOf(account.address).call()
            if balance < token_amount:
                logger.warning(f"⚠️ Rewarder balance {Web3.from_wei(balance, 'ether')} is below {amount}")
        except Web3Exception as e:
            logger.warning(f"⚠️ Error checking rewarder balance: {e}")

        fn = self.contract.functions.rewardTo(recipient, token_amount)
        try:
            fn.estimate_gas({"from": account.address})
        except (ContractLogicError, Web3Exception) as e:
            logger.warning(f"⚠️ rewardTo would fail ({e}), trying publicRewardTo")
            fn = self.contract.functions.publicRewardTo(recipient, token_amount)
            return self._send(fn, "publicRewardTo")["txHash"]

        return self._send(fn, "rewardTo")["txHash"]


_w3_singleton = None
_ledger_singleton = None
_token_singleton = None

def _web3() -> Web3:
    global _w3_singleton
    if _w3_singleton is None:
        if not SEPOLIA_RPC_URL:
            raise ChainNotConfiguredError("SEPOLIA_RPC_URL")
        _w3_singleton = Web3(Web3.HTTPProvider(SEPOLIA_RPC_URL, request_kwargs={"timeout": 30}))
    return _w3_singleton

def get_ledger():
    global _ledger_singleton
    if _ledger_singleton is None:
        if not CONTRACT_ADDRESS:
            raise ChainNotConfiguredError("NEXT_PUBLIC_CONTRACT_ADDRESS")
        _ledger_singleton = TaskLedger(_web3(), CONTRACT_ADDRESS, PRIVATE_KEY or None)
    return _ledger_singleton

def get_token():
    global _token_singleton
    if _token_singleton is None:
        if not MOM_TOKEN_ADDRESS:
            raise ChainNotConfiguredError("NEXT_PUBLIC_MOM_TOKEN_ADDRESS")
        _token_singleton = MomToken(_web3(), MOM_TOKEN_ADDRESS, REWARDER_PRIVATE_KEY or None)
    return _token_singleton

def set_ledger(ledger) -> None:
    global _ledger_singleton
    _ledger_singleton = ledger

def set_token(token) -> None:
    global _token_singleton
    _token_singleton = token
