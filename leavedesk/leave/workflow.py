"""Approval state machine for leave requests.

    pending ──approve──▶ approved
       │ ────reject───▶ rejected
       └─────cancel───▶ cancelled

Every status other than ``pending`` is terminal. ``plan_transition`` only
decides; the service applies the decision with a conditional write so two
concurrent attempts on one request cannot both succeed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from leavedesk.common.constants import LeaveAction, LeaveStatus, UserRole
from leavedesk.leave.exceptions import (
    IllegalTransition,
    RejectionReasonRequired,
    Unauthorized,
)


@dataclass(frozen=True)
class Actor:
    """Whoever is attempting a transition, resolved by the API layer."""

    employee_id: uuid.UUID
    role: UserRole


@dataclass(frozen=True)
class Transition:
    source: LeaveStatus
    target: LeaveStatus
    # None means only the request owner may act
    allowed_roles: Optional[frozenset[UserRole]]
    releases_ledger: bool
    requires_reason: bool = False


_REVIEWERS = frozenset({UserRole.manager, UserRole.admin})

TRANSITIONS: dict[LeaveAction, Transition] = {
    LeaveAction.approve: Transition(
        LeaveStatus.pending, LeaveStatus.approved, _REVIEWERS, releases_ledger=False,
    ),
    LeaveAction.reject: Transition(
        LeaveStatus.pending, LeaveStatus.rejected, _REVIEWERS,
        releases_ledger=True, requires_reason=True,
    ),
    LeaveAction.cancel: Transition(
        LeaveStatus.pending, LeaveStatus.cancelled, None, releases_ledger=True,
    ),
}


class TransitionSubject(Protocol):
    employee_id: uuid.UUID
    status: LeaveStatus


def plan_transition(
    request: TransitionSubject,
    action: LeaveAction,
    actor: Actor,
    *,
    reason: Optional[str] = None,
) -> Transition:
    """Check *action* against the table and return the transition to apply.

    Order: state first (so anything attempted on a terminal request is an
    ``IllegalTransition``), then actor rights, then preconditions.
    """
    transition = TRANSITIONS[action]

    if request.status != transition.source:
        raise IllegalTransition(request.status, transition.target)

    is_owner = request.employee_id == actor.employee_id
    if transition.allowed_roles is None:
        if not is_owner:
            raise Unauthorized(
                None, "Only the employee who submitted a leave request can cancel it.",
            )
    else:
        if actor.role not in transition.allowed_roles:
            raise Unauthorized(
                UserRole.manager,
                f"Role '{actor.role.value}' cannot {action.value} leave requests.",
            )
        if is_owner:
            raise Unauthorized(
                UserRole.manager,
                f"You cannot {action.value} your own leave request.",
            )

    if transition.requires_reason and not (reason and reason.strip()):
        raise RejectionReasonRequired()

    return transition
