"""
JWT payload decoding for expiry and display hints
"""
import base64
import binascii
import json
import logging
from typing import Any, Dict, Optional

from .constants import AUTH_CLAIM_PATH

logger = logging.getLogger(__name__)


def decode_jwt(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode JWT payload without verification.

    Note: the signature is NOT verified. Verification needs the provider's
    signing keys, and the payload is only ever read as an expiry or display
    hint, never to make an authorization decision locally.

    Args:
        token: JWT (header.payload.signature)

    Returns:
        Decoded JWT payload as dictionary, or None if invalid
    """
    if not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) != 3:
        logger.debug(f"Invalid JWT format: expected 3 parts, got {len(parts)}")
        return None

    payload = parts[1]
    # JWT uses base64url without padding
    payload += "=" * (-len(payload) % 4)

    try:
        decoded = json.loads(base64.urlsafe_b64decode(payload).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Error decoding JWT payload: {e}")
        return None

    if not isinstance(decoded, dict):
        logger.debug("JWT payload is not a JSON object")
        return None
    return decoded


def get_user_info(id_token: str) -> Dict[str, Optional[str]]:
    """
    Extract display information from an ID token.

    Args:
        id_token: OAuth ID token (JWT format)

    Returns:
        Dict with email, plan_type and account_id (values may be None)
    """
    claims = decode_jwt(id_token) or {}
    auth_claims = claims.get(AUTH_CLAIM_PATH)
    if not isinstance(auth_claims, dict):
        auth_claims = {}

    return {
        "email": claims.get("email"),
        "plan_type": auth_claims.get("chatgpt_plan_type"),
        "account_id": auth_claims.get("chatgpt_account_id"),
    }
