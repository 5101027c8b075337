# Overview: Service-layer operations for auth; PIN login against the configured operators.

"""
PIN Authentication Service

WHY: A single shared terminal needs to know which operator is at the till
(for the cashier name on receipts and processed_by on refunds) and keep store
settings behind the admin role. Operators and their PINs are configuration
(POS_USERS), not database rows.

SECURITY NOTES:
- PINs are compared in constant time
- Every configured user is checked, so timing does not reveal which PIN matched
- Session tokens are managed separately (see session_service.py)
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from flask import current_app


ROLE_ADMIN = "admin"
ROLE_STOREKEEPER = "storekeeper"


class AuthError(Exception):
    """Raised when a login attempt is rejected."""
    pass


@dataclass(frozen=True)
class PosUser:
    id: int
    name: str
    role: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role}


def _configured_users() -> list[dict]:
    return list(current_app.config.get("POS_USERS") or [])


def authenticate(pin: str) -> PosUser | None:
    """Return the operator whose PIN matches, or None."""
    if not isinstance(pin, str) or not pin:
        return None

    matched = None
    for entry in _configured_users():
        if hmac.compare_digest(str(entry.get("pin", "")).encode("utf-8"), pin.encode("utf-8")):
            matched = matched or entry
    if matched is None:
        return None
    return PosUser(id=int(matched["id"]), name=str(matched["name"]), role=str(matched["role"]))


def get_user(user_id: int) -> PosUser | None:
    for entry in _configured_users():
        if int(entry["id"]) == user_id:
            return PosUser(id=int(entry["id"]), name=str(entry["name"]), role=str(entry["role"]))
    return None


def login(pin: str) -> PosUser:
    user = authenticate(pin)
    if user is None:
        current_app.logger.warning("Rejected PIN login")
        raise AuthError("Invalid PIN")
    current_app.logger.info("Operator %s (%s) logged in", user.name, user.role)
    return user
