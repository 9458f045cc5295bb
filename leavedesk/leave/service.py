"""Leave service layer — submissions, approvals, balances, listings.

Business logic:
  - Submission: validate against catalog, ledger, and the employee's active
    requests, then reserve ledger days and persist as ``pending``
  - Approve / reject / cancel through the approval state machine, releasing
    ledger days on reject and cancel
  - Request listings, pending approvals, balances, and yearly statistics

Each public method runs inside the caller's transaction; nothing here
commits.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.audit import create_audit_entry
from leavedesk.common.constants import (
    ACTIVE_LEAVE_STATUSES,
    LeaveAction,
    LeaveStatus,
    UserRole,
)
from leavedesk.common.exceptions import ForbiddenException
from leavedesk.common.locks import KeyedLock, submission_locks
from leavedesk.leave import validator
from leavedesk.leave.exceptions import IllegalTransition, LeaveRequestNotFound
from leavedesk.leave.ledger import LeaveLedger
from leavedesk.leave.models import LeaveRequest
from leavedesk.leave.repository import (
    EmployeeDirectory,
    LeaveRequestRepository,
    LeaveTypeCatalog,
)
from leavedesk.leave.schemas import (
    LeaveBalanceOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveRequestPage,
    LeaveStatisticsOut,
    LeaveTypeOut,
    StatusCounts,
)
from leavedesk.leave.workflow import Actor, plan_transition
from leavedesk.notifications.service import (
    InboxNotifier,
    LeaveEvent,
    LeaveEventKind,
    LeaveNotifier,
)

logger = logging.getLogger(__name__)

_EVENT_FOR_STATUS: dict[LeaveStatus, LeaveEventKind] = {
    LeaveStatus.approved: LeaveEventKind.approved,
    LeaveStatus.rejected: LeaveEventKind.rejected,
    LeaveStatus.cancelled: LeaveEventKind.cancelled,
}


def _summary(req: LeaveRequest) -> str:
    return f"{req.start_date} to {req.end_date} ({req.total_days} day(s))"


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations bound to one session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        notifier: Optional[LeaveNotifier] = None,
        locks: KeyedLock = submission_locks,
    ) -> None:
        self.db = db
        self.directory = EmployeeDirectory(db)
        self.catalog = LeaveTypeCatalog(db)
        self.requests = LeaveRequestRepository(db)
        self.ledger = LeaveLedger(db)
        self.notifier: LeaveNotifier = notifier or InboxNotifier(db)
        self.locks = locks

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _build_request_response(req: LeaveRequest) -> LeaveRequestOut:
        """Build LeaveRequestOut from an ORM row loaded with its relationships.

        Callers must pass a row fetched through ``_load`` (or a listing with
        the same loader options) so no lazy load fires outside the greenlet.
        """
        return LeaveRequestOut.model_validate(req)

    async def _load(self, request_id: uuid.UUID) -> LeaveRequest:
        leave_req = await self.requests.get(request_id, refresh=True)
        if leave_req is None:
            raise LeaveRequestNotFound(request_id)
        return leave_req

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    async def submit_leave_request(
        self,
        employee_id: uuid.UUID,
        draft: LeaveRequestCreate,
        *,
        today: date,
    ) -> LeaveRequestOut:
        """Validate and persist a new ``pending`` request, reserving its days.

        Read → validate → reserve → persist runs under a per-employee lock
        (in process) and a row lock on the employee (in the database), so
        two overlapping submissions cannot both pass the overlap and
        balance checks.
        """
        async with self.locks.hold(employee_id):
            employee = await self.directory.lock(employee_id)

            if draft.submission_key:
                existing = await self.requests.find_by_submission_key(
                    employee_id, draft.submission_key,
                )
                if existing is not None:
                    logger.info(
                        "Replayed submission %r for employee %s → request %s",
                        draft.submission_key, employee_id, existing.id,
                    )
                    return self._build_request_response(await self._load(existing.id))

            leave_type = await self.catalog.resolve(draft.leave_type_id)
            year = draft.start_date.year
            consumed = (
                await self.ledger.consumed(employee_id, leave_type.id, year)
                if leave_type is not None
                else 0
            )
            active = await self.requests.list_for_employee(
                employee_id, statuses=ACTIVE_LEAVE_STATUSES,
            )

            validator.validate(
                draft,
                leave_type=leave_type,
                existing_requests=active,
                consumed_days=consumed,
                today=today,
            )

            total_days = validator.days_requested(draft.start_date, draft.end_date)
            await self.ledger.reserve(
                employee_id,
                leave_type.id,
                year,
                total_days,
                cap=leave_type.max_days_per_year,
            )

            now = datetime.now(timezone.utc)
            leave_req = await self.requests.create(
                employee_id=employee_id,
                leave_type_id=leave_type.id,
                start_date=draft.start_date,
                end_date=draft.end_date,
                total_days=total_days,
                reason=draft.reason,
                attachment_ref=draft.attachment_ref,
                status=LeaveStatus.pending,
                submission_key=draft.submission_key,
                created_at=now,
                updated_at=now,
            )

            await create_audit_entry(
                self.db,
                action="submit",
                entity_type="leave_request",
                entity_id=leave_req.id,
                actor_id=employee_id,
                new_values={
                    "leave_type": leave_type.code,
                    "start_date": draft.start_date.isoformat(),
                    "end_date": draft.end_date.isoformat(),
                    "total_days": total_days,
                    "status": LeaveStatus.pending.value,
                },
            )

            if employee.reporting_manager_id:
                await self.notifier.emit(
                    LeaveEvent(
                        request_id=leave_req.id,
                        kind=LeaveEventKind.submitted,
                        recipient_id=employee.reporting_manager_id,
                        summary=_summary(leave_req),
                    )
                )

            logger.info(
                "Leave request %s submitted by %s: %s %s..%s (%d day(s))",
                leave_req.id, employee_id, leave_type.code,
                draft.start_date, draft.end_date, total_days,
            )

        return self._build_request_response(await self._load(leave_req.id))

    # ─────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────

    async def transition(
        self,
        request_id: uuid.UUID,
        action: LeaveAction,
        actor: Actor,
        *,
        reason: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Apply *action* to a pending request on behalf of *actor*.

        The status change is a conditional write on ``status = 'pending'``;
        when a concurrent transition wins the race the loser gets
        ``IllegalTransition`` against the status that is now stored.
        """
        leave_req = await self._load(request_id)
        transition = plan_transition(leave_req, action, actor, reason=reason)

        now = datetime.now(timezone.utc)
        values: dict = {"updated_at": now}
        if action is LeaveAction.cancel:
            values["cancelled_at"] = now
            values["reviewer_remarks"] = remarks
        else:
            values["reviewed_by"] = actor.employee_id
            values["reviewed_at"] = now
            if action is LeaveAction.reject:
                values["rejection_reason"] = reason.strip()
            else:
                values["reviewer_remarks"] = remarks

        # A ledger underflow undoes the status write with it.
        async with self.db.begin_nested():
            won = await self.requests.apply_transition(
                request_id,
                expected=transition.source,
                target=transition.target,
                values=values,
            )
            if won and transition.releases_ledger:
                await self.ledger.release(
                    leave_req.employee_id,
                    leave_req.leave_type_id,
                    leave_req.year,
                    leave_req.total_days,
                )
        if not won:
            current = await self._load(request_id)
            logger.warning(
                "Lost transition race on %s: wanted %s, found %s",
                request_id, transition.target.value, current.status.value,
            )
            raise IllegalTransition(current.status, transition.target)

        await create_audit_entry(
            self.db,
            action=action.value,
            entity_type="leave_request",
            entity_id=request_id,
            actor_id=actor.employee_id,
            old_values={"status": transition.source.value},
            new_values={
                "status": transition.target.value,
                "reason": reason,
                "remarks": remarks,
            },
        )

        leave_req = await self._load(request_id)
        if action is LeaveAction.cancel:
            recipient = leave_req.employee.reporting_manager_id
        else:
            recipient = leave_req.employee_id
        if recipient:
            await self.notifier.emit(
                LeaveEvent(
                    request_id=request_id,
                    kind=_EVENT_FOR_STATUS[transition.target],
                    recipient_id=recipient,
                    summary=_summary(leave_req),
                    reason=leave_req.rejection_reason,
                )
            )

        logger.info(
            "Leave request %s: %s → %s by %s",
            request_id, transition.source.value, transition.target.value,
            actor.employee_id,
        )
        return self._build_request_response(leave_req)

    async def approve(
        self,
        request_id: uuid.UUID,
        actor: Actor,
        *,
        remarks: Optional[str] = None,
    ) -> LeaveRequestOut:
        return await self.transition(
            request_id, LeaveAction.approve, actor, remarks=remarks,
        )

    async def reject(
        self,
        request_id: uuid.UUID,
        actor: Actor,
        reason: str,
    ) -> LeaveRequestOut:
        return await self.transition(
            request_id, LeaveAction.reject, actor, reason=reason,
        )

    async def cancel(
        self,
        request_id: uuid.UUID,
        actor: Actor,
        *,
        remarks: Optional[str] = None,
    ) -> LeaveRequestOut:
        return await self.transition(
            request_id, LeaveAction.cancel, actor, remarks=remarks,
        )

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    async def get_request(
        self,
        request_id: uuid.UUID,
        viewer: Actor,
    ) -> LeaveRequestOut:
        """Single request; visible to its owner, managers, and admins."""
        leave_req = await self._load(request_id)
        if (
            leave_req.employee_id != viewer.employee_id
            and viewer.role is UserRole.employee
        ):
            raise ForbiddenException("You can only view your own leave requests.")
        return self._build_request_response(leave_req)

    async def list_requests(
        self,
        employee_id: Optional[uuid.UUID] = None,
        *,
        status: Optional[LeaveStatus] = None,
        leave_type_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> LeaveRequestPage:
        """Requests of one employee, or of everyone when *employee_id* is None."""
        rows, meta = await self.requests.search(
            employee_ids=[employee_id] if employee_id else None,
            status=status,
            leave_type_id=leave_type_id,
            from_date=from_date,
            to_date=to_date,
            page=page,
            page_size=page_size,
        )
        return LeaveRequestPage(
            data=[self._build_request_response(r) for r in rows],
            meta=meta,
        )

    async def pending_approvals(
        self,
        reviewer: Actor,
        *,
        page: int = 1,
        page_size: int = 50,
    ) -> LeaveRequestPage:
        """Pending requests awaiting *reviewer*, oldest first.

        Admins see every pending request; managers see their direct reports'.
        """
        employee_ids: Optional[list[uuid.UUID]] = None
        if reviewer.role is not UserRole.admin:
            employee_ids = await self.directory.direct_report_ids(reviewer.employee_id)

        rows, meta = await self.requests.search(
            employee_ids=employee_ids,
            status=LeaveStatus.pending,
            oldest_first=True,
            page=page,
            page_size=page_size,
        )
        return LeaveRequestPage(
            data=[self._build_request_response(r) for r in rows],
            meta=meta,
        )

    async def get_leave_types(self, *, today: date) -> list[LeaveTypeOut]:
        """Active catalog with the earliest start date each type allows today."""
        output: list[LeaveTypeOut] = []
        for lt in await self.catalog.list_all():
            out = LeaveTypeOut.model_validate(lt)
            out.earliest_start_date = today + timedelta(days=lt.advance_notice_days)
            output.append(out)
        return output

    async def get_balances(
        self,
        employee_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalanceOut]:
        await self.directory.require(employee_id)
        leave_types = await self.catalog.list_all()
        return await self.ledger.summary(employee_id, year, leave_types)

    async def get_statistics(
        self,
        employee_id: uuid.UUID,
        year: int,
    ) -> LeaveStatisticsOut:
        """Counts of the employee's requests starting in *year*, by status and type."""
        await self.directory.require(employee_id)
        requests = await self.requests.list_for_employee(employee_id, year=year)
        codes = {lt.id: lt.code for lt in await self.catalog.list_all(include_inactive=True)}

        totals = StatusCounts()
        by_type: dict[str, StatusCounts] = defaultdict(StatusCounts)
        for req in requests:
            for bucket in (totals, by_type[codes.get(req.leave_type_id, str(req.leave_type_id))]):
                bucket.total += 1
                setattr(bucket, req.status.value, getattr(bucket, req.status.value) + 1)

        return LeaveStatisticsOut(
            employee_id=employee_id,
            year=year,
            totals=totals,
            by_type=dict(by_type),
        )
