"""
Authentication Service
Handles wallet-based login, JWT issuance/verification and user token balances
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from loguru import logger
from pymongo import ReturnDocument
from web3 import Web3

from config import (
    JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRY_DAYS,
    KEY_ADDRESS, KEY_TOKEN_BALANCE, KEY_LAST_LOGIN, KEY_CREATED
)
from db import users_col
from errors import AuthenticationError, ValidationError
from models import now_iso

BEARER_PREFIX = "Bearer "


def create_token(wallet_address: str) -> str:
    """Create a JWT for a wallet address"""
    issued = datetime.now(timezone.utc)
    payload = {
        "address": wallet_address,
        "iat": issued,
        "exp": issued + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode a JWT, returns None when it is invalid or expired"""
    try:
        decoded = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.warning(f"⚠️ Token verification error: {e}")
        return None
    if not decoded.get("address"):
        return None
    return decoded


def address_from_header(authorization: Optional[str]) -> str:
    """Resolve the caller's wallet address from an Authorization header"""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Authentication required")

    decoded = verify_token(authorization[len(BEARER_PREFIX):].strip())
    if not decoded:
        raise AuthenticationError("Invalid token")
    return decoded["address"]


def optional_address_from_header(authorization: Optional[str]) -> Optional[str]:
    try:
        return address_from_header(authorization)
    except AuthenticationError:
        return None


def login(wallet_address: str) -> Dict[str, Any]:
    """
    Log a wallet in
    Upserts the user document and returns {token, user}
    """
    wallet_address = (wallet_address or "").strip()
    if not wallet_address:
        raise ValidationError("Wallet address is required")
    if not Web3.is_address(wallet_address):
        raise ValidationError("Invalid wallet address")

    now = now_iso()
    user = users_col().find_one_and_update(
        {KEY_ADDRESS: wallet_address},
        {
            "$set": {KEY_LAST_LOGIN: now},
            "$setOnInsert": {
                KEY_CREATED: now,
                KEY_TOKEN_BALANCE: 0.0,
            },
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
        projection={"_id": 0},
    )

    logger.info(f"✅ Wallet logged in: {wallet_address[:8]}...")
    return {"token": create_token(wallet_address), "user": user}


def get_user(address: str) -> Optional[Dict[str, Any]]:
    return users_col().find_one({KEY_ADDRESS: address}, {"_id": 0})


def get_user_balance(address: str) -> float:
    user = get_user(address)
    if not user:
        return 0.0
    return float(user.get(KEY_TOKEN_BALANCE) or 0)


def update_user_token_balance(address: str, amount: float) -> Dict[str, Any]:
    """Add amount to the user's off-chain token balance"""
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number")

    user = users_col().find_one_and_update(
        {KEY_ADDRESS: address},
        {"$inc": {KEY_TOKEN_BALANCE: amount}},
        return_document=ReturnDocument.AFTER,
        projection={"_id": 0},
    )
    if not user:
        raise ValidationError("User not found")
    return user
