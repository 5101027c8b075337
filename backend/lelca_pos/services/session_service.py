# Overview: Service-layer operations for session; issues, validates and revokes bearer tokens.

"""
Session Token Management Service

Tokens are cryptographically secure, hashed in the database and
time-limited (AUTH_TOKEN_MAX_AGE seconds). Logging out revokes the token.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken
from lelca_pos.time_utils import utcnow
from .auth_service import PosUser, get_user


@dataclass
class SessionContext:
    user: PosUser
    session: SessionToken


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough here: tokens are high-entropy, unlike PINs."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user: PosUser) -> tuple[SessionToken, str]:
    """Returns (session_record, plaintext_token)."""
    plaintext_token = generate_token()
    now = utcnow()
    max_age = int(current_app.config.get("AUTH_TOKEN_MAX_AGE", 12 * 60 * 60))

    session = SessionToken(
        user_id=user.id,
        user_name=user.name,
        role=user.role,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + timedelta(seconds=max_age),
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Returns None if the token is unknown, expired or revoked, or the
    operator has since been removed from configuration.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return None

    if session.expires_at < utcnow():
        return None

    user = get_user(session.user_id)
    if user is None:
        return None

    return SessionContext(user=user, session=session)


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False
    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True
