# -*- coding: utf-8 -*-
"""
Session/credential helpers shared by the session store and the HTTP layer.
"""

from datetime import datetime, timezone

import jwt

from utils.logging_config import get_logger

logger = get_logger(__name__)


def mask_email(email: str | None) -> str:
    """Mask an email for logs: 'member@example.com' -> 'me****@example.com'."""
    if not email or "@" not in email:
        return "****"
    local, _, domain = email.partition("@")
    if len(local) <= 2:
        return f"{'*' * len(local)}@{domain}"
    return f"{local[:2]}{'*' * (len(local) - 2)}@{domain}"


def is_token_expired(token: str) -> bool:
    """
    Return True only when ``token`` is a JWT whose ``exp`` has passed.

    The signature is not verified; opaque (non-JWT) session tokens are
    never considered expired here and must be checked by the backend.
    """
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.exceptions.DecodeError:
        return False
    except jwt.exceptions.PyJWTError as e:
        logger.warning(f"Unexpected error reading token claims: {type(e).__name__}")
        return False

    exp = payload.get("exp")
    if exp is None:
        return False
    try:
        exp_datetime = datetime.fromtimestamp(float(exp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return False
    return exp_datetime < datetime.now(tz=timezone.utc)
