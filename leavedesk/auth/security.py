"""JWT helpers — access tokens are issued by the identity provider in
production; ``create_access_token`` exists for local tooling and tests."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import jwt

from leavedesk.common.constants import UserRole
from leavedesk.config import settings


def create_access_token(
    employee_id: uuid.UUID,
    role: UserRole,
    *,
    expires_in: Optional[timedelta] = None,
) -> str:
    expires_in = expires_in or timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": "access",
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify *token*; raises ``jose.JWTError`` on any failure."""
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
    )
