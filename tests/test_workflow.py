"""Approval state machine — pure transition planning."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import pytest

from leavedesk.common.constants import LeaveAction, LeaveStatus, UserRole
from leavedesk.leave import IllegalTransition, Unauthorized
from leavedesk.leave.exceptions import RejectionReasonRequired
from leavedesk.leave.workflow import TRANSITIONS, Actor, plan_transition


@dataclass
class Subject:
    status: LeaveStatus = LeaveStatus.pending
    employee_id: uuid.UUID = field(default_factory=uuid.uuid4)


def _actor(role: UserRole = UserRole.manager) -> Actor:
    return Actor(employee_id=uuid.uuid4(), role=role)


def _owner(subject: Subject) -> Actor:
    return Actor(employee_id=subject.employee_id, role=UserRole.employee)


class TestTransitionTable:
    def test_every_transition_leaves_pending(self):
        assert {t.source for t in TRANSITIONS.values()} == {LeaveStatus.pending}

    def test_reachable_targets(self):
        assert {t.target for t in TRANSITIONS.values()} == {
            LeaveStatus.approved,
            LeaveStatus.rejected,
            LeaveStatus.cancelled,
        }

    def test_only_reject_and_cancel_release_days(self):
        released = {a for a, t in TRANSITIONS.items() if t.releases_ledger}
        assert released == {LeaveAction.reject, LeaveAction.cancel}


class TestAllowedTransitions:
    @pytest.mark.parametrize("role", [UserRole.manager, UserRole.admin])
    def test_reviewer_approves(self, role):
        t = plan_transition(Subject(), LeaveAction.approve, _actor(role))
        assert t.target is LeaveStatus.approved

    def test_manager_rejects_with_reason(self):
        t = plan_transition(
            Subject(), LeaveAction.reject, _actor(), reason="Team offsite that week",
        )
        assert t.target is LeaveStatus.rejected

    def test_owner_cancels(self):
        subject = Subject()
        t = plan_transition(subject, LeaveAction.cancel, _owner(subject))
        assert t.target is LeaveStatus.cancelled


class TestRefusedTransitions:
    @pytest.mark.parametrize(
        "status", [LeaveStatus.approved, LeaveStatus.rejected, LeaveStatus.cancelled],
    )
    @pytest.mark.parametrize("action", list(LeaveAction))
    def test_terminal_states_are_closed(self, status, action):
        subject = Subject(status=status)
        actor = _owner(subject) if action is LeaveAction.cancel else _actor()
        with pytest.raises(IllegalTransition) as exc_info:
            plan_transition(subject, action, actor, reason="x")
        assert exc_info.value.from_status is status
        assert exc_info.value.to_status is TRANSITIONS[action].target

    def test_state_checked_before_actor(self):
        # An employee trying to approve a decided request sees the state conflict
        with pytest.raises(IllegalTransition):
            plan_transition(
                Subject(status=LeaveStatus.approved),
                LeaveAction.approve,
                _actor(UserRole.employee),
            )

    def test_employee_cannot_approve(self):
        with pytest.raises(Unauthorized) as exc_info:
            plan_transition(Subject(), LeaveAction.approve, _actor(UserRole.employee))
        assert exc_info.value.required_role is UserRole.manager
        assert exc_info.value.extra() == {"required_role": "manager"}

    def test_employee_cannot_reject(self):
        with pytest.raises(Unauthorized):
            plan_transition(
                Subject(), LeaveAction.reject, _actor(UserRole.employee), reason="no",
            )

    def test_manager_cannot_review_own_request(self):
        subject = Subject()
        me = Actor(employee_id=subject.employee_id, role=UserRole.manager)
        with pytest.raises(Unauthorized):
            plan_transition(subject, LeaveAction.approve, me)

    @pytest.mark.parametrize("role", list(UserRole))
    def test_only_owner_may_cancel(self, role):
        with pytest.raises(Unauthorized) as exc_info:
            plan_transition(Subject(), LeaveAction.cancel, _actor(role))
        assert exc_info.value.required_role is None
        assert exc_info.value.extra() == {"required_role": "owner"}

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reject_requires_reason(self, reason):
        with pytest.raises(RejectionReasonRequired):
            plan_transition(Subject(), LeaveAction.reject, _actor(), reason=reason)

    def test_actor_checked_before_reason(self):
        with pytest.raises(Unauthorized):
            plan_transition(Subject(), LeaveAction.reject, _actor(UserRole.employee))
