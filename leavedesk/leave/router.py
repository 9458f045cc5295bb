"""Leave router — submit, approve/reject/cancel, listings, balances, catalog.

All endpoints require authentication. Transition rights are decided by the
approval state machine rather than by route guards, so a manager-only action
on an already-decided request still reports the state conflict first.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_actor, get_today, require_role
from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.common.exceptions import ForbiddenException
from leavedesk.common.pagination import PaginationParams
from leavedesk.common.rate_limit import limiter
from leavedesk.config import settings
from leavedesk.database import get_db
from leavedesk.leave.schemas import (
    LeaveApproveRequest,
    LeaveBalanceOut,
    LeaveCancelRequest,
    LeaveRejectRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveRequestPage,
    LeaveStatisticsOut,
    LeaveTypeOut,
)
from leavedesk.leave.service import LeaveService
from leavedesk.leave.workflow import Actor

router = APIRouter(prefix="", tags=["leave"])


# ── POST /requests ──────────────────────────────────────────────────

@router.post("/requests", response_model=LeaveRequestOut, status_code=201)
@limiter.limit(settings.SUBMIT_RATE_LIMIT)
async def submit_leave_request(
    request: Request,
    body: LeaveRequestCreate,
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request. Validates type, dates, notice, attachment, balance, and overlap."""
    return await LeaveService(db).submit_leave_request(actor.employee_id, body, today=today)


# ── GET /requests ───────────────────────────────────────────────────

@router.get("/requests", response_model=LeaveRequestPage)
async def list_requests(
    employee_id: Optional[uuid.UUID] = Query(None, description="Omit for all employees (managers/admins)"),
    status: Optional[LeaveStatus] = Query(None),
    leave_type_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """List leave requests. Employees may only list their own."""
    if actor.role is UserRole.employee:
        if employee_id is not None and employee_id != actor.employee_id:
            raise ForbiddenException("You can only list your own leave requests.")
        employee_id = actor.employee_id

    return await LeaveService(db).list_requests(
        employee_id,
        status=status,
        leave_type_id=leave_type_id,
        from_date=from_date,
        to_date=to_date,
        page=pagination.page,
        page_size=pagination.page_size,
    )


# ── GET /my-requests ────────────────────────────────────────────────

@router.get("/my-requests", response_model=LeaveRequestPage)
async def my_requests(
    status: Optional[LeaveStatus] = Query(None),
    leave_type_id: Optional[uuid.UUID] = Query(None),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get the authenticated user's leave requests with pagination."""
    return await LeaveService(db).list_requests(
        actor.employee_id,
        status=status,
        leave_type_id=leave_type_id,
        page=pagination.page,
        page_size=pagination.page_size,
    )


# ── GET /pending-approvals ──────────────────────────────────────────

@router.get("/pending-approvals", response_model=LeaveRequestPage)
async def pending_approvals(
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(require_role(UserRole.manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Pending requests awaiting the caller's decision, oldest first."""
    return await LeaveService(db).pending_approvals(
        actor, page=pagination.page, page_size=pagination.page_size,
    )


# ── GET /requests/{id} ──────────────────────────────────────────────

@router.get("/requests/{request_id}", response_model=LeaveRequestOut)
async def get_request(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService(db).get_request(request_id, actor)


# ── PUT /requests/{id}/approve ──────────────────────────────────────

@router.put("/requests/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_request(
    request_id: uuid.UUID,
    body: LeaveApproveRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending leave request. Reserved days stay consumed."""
    return await LeaveService(db).approve(request_id, actor, remarks=body.remarks)


# ── PUT /requests/{id}/reject ───────────────────────────────────────

@router.put("/requests/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_request(
    request_id: uuid.UUID,
    body: LeaveRejectRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending leave request and release its days."""
    return await LeaveService(db).reject(request_id, actor, body.reason)


# ── PUT /requests/{id}/cancel ───────────────────────────────────────

@router.put("/requests/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_request(
    request_id: uuid.UUID,
    body: LeaveCancelRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Cancel one of your own pending leave requests and release its days."""
    return await LeaveService(db).cancel(request_id, actor, remarks=body.remarks)


# ── GET /balances ───────────────────────────────────────────────────

@router.get("/balances", response_model=list[LeaveBalanceOut])
async def get_balances(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Leave year; defaults to current year"),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Get the authenticated user's leave balances for a given year."""
    return await LeaveService(db).get_balances(actor.employee_id, year or today.year)


# ── GET /types ──────────────────────────────────────────────────────

@router.get("/types", response_model=list[LeaveTypeOut])
async def get_leave_types(
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """List active leave types with the earliest start date each allows today."""
    return await LeaveService(db).get_leave_types(today=today)


# ── GET /statistics ─────────────────────────────────────────────────

@router.get("/statistics", response_model=LeaveStatisticsOut)
async def get_statistics(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Request counts for the authenticated user, by status and leave type."""
    return await LeaveService(db).get_statistics(actor.employee_id, year or today.year)
