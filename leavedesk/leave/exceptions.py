"""Leave error taxonomy.

Validation  — user-correctable, surfaced verbatim to the submitter (422).
Authorization — actor lacks the right for a transition (403).
State       — transition not in the allowed table (409).
Lookup      — unknown leave type / request / employee (404).
Integrity   — ``LedgerUnderflow``; a programming error, never rendered as
              a problem document.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

from leavedesk.common.constants import LeaveStatus, UserRole
from leavedesk.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
)


# ── Validation ──────────────────────────────────────────────────────

class LeaveRequestError(AppException):
    """A leave submission broke one of the eligibility rules."""

    status_code = 422
    error_type = "leave-validation"
    title = "Leave Request Invalid"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message, {field: [message]})


class InvalidDateRange(LeaveRequestError):
    def __init__(self) -> None:
        super().__init__("end_date", "Start date must be on or before end date.")


class PastStartDate(LeaveRequestError):
    def __init__(self) -> None:
        super().__init__("start_date", "Leave cannot start in the past.")


class InsufficientAdvanceNotice(LeaveRequestError):
    def __init__(self, required_days: int) -> None:
        self.required_days = required_days
        super().__init__(
            "start_date",
            f"This leave type requires at least {required_days} day(s) advance notice.",
        )

    def extra(self) -> dict[str, Any]:
        return {"required_days": self.required_days}


class AttachmentRequired(LeaveRequestError):
    def __init__(self) -> None:
        super().__init__(
            "attachment_ref", "This leave type requires a supporting attachment.",
        )


class CrossYearSpan(LeaveRequestError):
    def __init__(self) -> None:
        super().__init__(
            "end_date",
            "A leave request cannot span two calendar years; split it at 31 December.",
        )


class BalanceExceeded(LeaveRequestError):
    def __init__(self, remaining_days: int) -> None:
        self.remaining_days = remaining_days
        super().__init__(
            "balance",
            f"Insufficient leave balance. Remaining: {remaining_days} day(s).",
        )

    def extra(self) -> dict[str, Any]:
        return {"remaining_days": self.remaining_days}


class OverlappingRequest(LeaveRequestError):
    def __init__(self, conflicting_id: uuid.UUID) -> None:
        self.conflicting_id = conflicting_id
        super().__init__(
            "dates",
            f"These dates overlap pending or approved leave request {conflicting_id}.",
        )

    def extra(self) -> dict[str, Any]:
        return {"conflicting_id": str(self.conflicting_id)}


class RejectionReasonRequired(LeaveRequestError):
    def __init__(self) -> None:
        super().__init__("reason", "A reason is required to reject a leave request.")


# ── Authorization ───────────────────────────────────────────────────

class Unauthorized(ForbiddenException):
    """Transition attempted by an actor without the right to perform it.

    ``required_role`` is ``None`` when only the request's owner may act.
    """

    def __init__(self, required_role: Optional[UserRole], detail: str) -> None:
        self.required_role = required_role
        super().__init__(detail)

    def extra(self) -> dict[str, Any]:
        return {
            "required_role": self.required_role.value if self.required_role else "owner",
        }


# ── State ───────────────────────────────────────────────────────────

class IllegalTransition(ConflictError):
    def __init__(self, from_status: LeaveStatus, to_status: LeaveStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move a leave request from '{from_status.value}' "
            f"to '{to_status.value}'."
        )

    def extra(self) -> dict[str, Any]:
        return {"from": self.from_status.value, "to": self.to_status.value}


# ── Lookup ──────────────────────────────────────────────────────────

class LeaveTypeNotFound(NotFoundException):
    def __init__(self, leave_type_id: Any) -> None:
        super().__init__("LeaveType", leave_type_id)


class LeaveRequestNotFound(NotFoundException):
    def __init__(self, request_id: Any) -> None:
        super().__init__("LeaveRequest", request_id)


class EmployeeNotFound(NotFoundException):
    def __init__(self, employee_id: Any) -> None:
        super().__init__("Employee", employee_id)


# ── Integrity ───────────────────────────────────────────────────────

class LedgerUnderflow(RuntimeError):
    """Release of more days than the ledger holds for the key."""

    def __init__(
        self,
        employee_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
        *,
        consumed: int,
        requested: int,
    ) -> None:
        self.employee_id = employee_id
        self.leave_type_id = leave_type_id
        self.year = year
        self.consumed = consumed
        self.requested = requested
        super().__init__(
            f"Ledger underflow for employee={employee_id} type={leave_type_id} "
            f"year={year}: releasing {requested} of {consumed} consumed day(s)."
        )
