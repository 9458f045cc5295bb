"""Auth dependencies — JWT validation, actor resolution, RBAC enforcement."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Callable
from zoneinfo import ZoneInfo

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.security import decode_access_token
from leavedesk.common.constants import UserRole
from leavedesk.common.exceptions import ForbiddenException
from leavedesk.config import settings
from leavedesk.core_hr.models import Employee
from leavedesk.database import get_db
from leavedesk.leave.repository import EmployeeDirectory
from leavedesk.leave.workflow import Actor


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_employee(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Validate the JWT and return the active Employee it names.

    The role used for authorization is the one stored on the employee
    record, not the claim in the token, so a demotion takes effect without
    waiting for tokens to expire.
    """
    token = _extract_bearer(request)

    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    try:
        employee_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject.")

    employee = await EmployeeDirectory(db).get(employee_id)
    if employee is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    request.state.user_role = employee.role
    return employee


async def get_current_actor(
    employee: Employee = Depends(get_current_employee),
) -> Actor:
    return Actor(employee_id=employee.id, role=employee.role)


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership."""

    async def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed_roles:
            raise ForbiddenException(
                detail=f"Role '{actor.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return actor

    return _check


# ── Clock ───────────────────────────────────────────────────────────

def get_today() -> date:
    """Current date in the organisation's timezone. Overridden in tests."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()
