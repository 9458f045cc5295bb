"""Leave request validator — pure eligibility rules for a submission.

Nothing here touches the database. The service resolves the leave type,
reads the employee's active requests and the ledger, then asks
``evaluate`` for a verdict. Rules run in a fixed order and the first
violation wins, so callers always see the same error for the same input.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date
from typing import Optional, Protocol

from leavedesk.common.constants import ACTIVE_LEAVE_STATUSES, LeaveStatus
from leavedesk.leave.exceptions import (
    AttachmentRequired,
    BalanceExceeded,
    CrossYearSpan,
    InsufficientAdvanceNotice,
    InvalidDateRange,
    LeaveRequestError,
    LeaveTypeNotFound,
    OverlappingRequest,
    PastStartDate,
)
from leavedesk.leave.schemas import LeaveRequestCreate


class LeavePolicy(Protocol):
    """The slice of a leave type the rules read."""

    max_days_per_year: int
    advance_notice_days: int
    requires_attachment: bool


class ExistingRequest(Protocol):
    id: uuid.UUID
    start_date: date
    end_date: date
    status: LeaveStatus


def days_requested(start_date: date, end_date: date) -> int:
    """Inclusive calendar-day count of a leave range."""
    return (end_date - start_date).days + 1


def ranges_overlap(
    a_start: date, a_end: date, b_start: date, b_end: date,
) -> bool:
    """True when two inclusive date ranges share at least one day."""
    return a_start <= b_end and b_start <= a_end


def evaluate(
    draft: LeaveRequestCreate,
    *,
    leave_type: Optional[LeavePolicy],
    existing_requests: Iterable[ExistingRequest],
    consumed_days: int,
    today: date,
) -> Optional[LeaveRequestError | LeaveTypeNotFound]:
    """Return the first rule *draft* breaks, or ``None`` if it is eligible.

    Args:
        draft: The submitted dates, reason, and attachment.
        leave_type: Resolved catalog entry, ``None`` if it did not resolve.
        existing_requests: The employee's other requests; only pending and
            approved ones are considered for overlap.
        consumed_days: Ledger value for (employee, type, start year).
        today: Current date in the organisation's timezone.
    """
    if leave_type is None:
        return LeaveTypeNotFound(draft.leave_type_id)

    start, end = draft.start_date, draft.end_date
    if start > end:
        return InvalidDateRange()

    if start < today:
        return PastStartDate()

    if (start - today).days < leave_type.advance_notice_days:
        return InsufficientAdvanceNotice(leave_type.advance_notice_days)

    if leave_type.requires_attachment and not (
        draft.attachment_ref and draft.attachment_ref.strip()
    ):
        return AttachmentRequired()

    if start.year != end.year:
        return CrossYearSpan()

    requested = days_requested(start, end)
    remaining = max(leave_type.max_days_per_year - consumed_days, 0)
    if requested > remaining:
        return BalanceExceeded(remaining)

    for other in existing_requests:
        if other.status not in ACTIVE_LEAVE_STATUSES:
            continue
        if ranges_overlap(start, end, other.start_date, other.end_date):
            return OverlappingRequest(other.id)

    return None


def validate(
    draft: LeaveRequestCreate,
    *,
    leave_type: Optional[LeavePolicy],
    existing_requests: Iterable[ExistingRequest],
    consumed_days: int,
    today: date,
) -> None:
    """Raise the first violated rule; see ``evaluate``."""
    error = evaluate(
        draft,
        leave_type=leave_type,
        existing_requests=existing_requests,
        consumed_days=consumed_days,
        today=today,
    )
    if error is not None:
        raise error
