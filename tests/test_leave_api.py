"""Leave API — routes, auth, and problem+json error bodies."""

from __future__ import annotations

import uuid

from leavedesk.common.constants import UserRole
from leavedesk.leave.ledger import LeaveLedger
from tests.conftest import TestSessionFactory, auth_headers_for, make_employee


def _body(leave_type_id: uuid.UUID, start: str, end: str, **extra) -> dict:
    return {
        "leave_type_id": str(leave_type_id),
        "start_date": start,
        "end_date": end,
        "reason": "Family trip",
        **extra,
    }


async def _consumed(employee_id, leave_type_id, year: int = 2024) -> int:
    async with TestSessionFactory() as session:
        return await LeaveLedger(session).consumed(employee_id, leave_type_id, year)


# ═════════════════════════════════════════════════════════════════════
# System / auth
# ═════════════════════════════════════════════════════════════════════


async def test_health_check(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


async def test_requires_bearer_token(client):
    resp = await client.get("/api/v1/leave/types")
    assert resp.status_code == 401


async def test_rejects_expired_token(client, db, employee):
    await db.commit()
    resp = await client.get(
        "/api/v1/leave/types", headers=auth_headers_for(employee, expired=True),
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired."


async def test_rejects_inactive_employee(client, db):
    gone = await make_employee(db, is_active=False)
    await db.commit()
    resp = await client.get("/api/v1/leave/types", headers=auth_headers_for(gone))
    assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# Submit
# ═════════════════════════════════════════════════════════════════════


async def test_submit_and_fetch(client, db, employee, annual):
    await db.commit()
    headers = auth_headers_for(employee)

    resp = await client.post(
        "/api/v1/leave/requests",
        json=_body(annual.id, "2024-06-10", "2024-06-14"),
        headers=headers,
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["total_days"] == 5
    assert data["employee"]["id"] == str(employee.id)
    assert data["leave_type"]["code"] == "AL"

    fetched = await client.get(f"/api/v1/leave/requests/{data['id']}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["id"] == data["id"]
    assert await _consumed(employee.id, annual.id) == 5


async def test_overlap_problem_body(client, db, employee, annual):
    await db.commit()
    headers = auth_headers_for(employee)
    first = await client.post(
        "/api/v1/leave/requests",
        json=_body(annual.id, "2024-06-10", "2024-06-14"),
        headers=headers,
    )

    resp = await client.post(
        "/api/v1/leave/requests",
        json=_body(annual.id, "2024-06-12", "2024-06-13"),
        headers=headers,
    )

    assert resp.status_code == 422
    assert resp.headers["content-type"].startswith("application/problem+json")
    problem = resp.json()
    assert problem["kind"] == "OverlappingRequest"
    assert problem["conflicting_id"] == first.json()["id"]
    assert "dates" in problem["errors"]


async def test_short_notice_problem_body(client, db, employee, annual):
    await db.commit()
    resp = await client.post(
        "/api/v1/leave/requests",
        json=_body(annual.id, "2024-06-02", "2024-06-03"),
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 422
    assert resp.json()["kind"] == "InsufficientAdvanceNotice"
    assert resp.json()["required_days"] == 3


async def test_unknown_leave_type_is_404(client, db, employee):
    await db.commit()
    resp = await client.post(
        "/api/v1/leave/requests",
        json=_body(uuid.uuid4(), "2024-06-10", "2024-06-14"),
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 404
    assert resp.json()["kind"] == "LeaveTypeNotFound"


async def test_malformed_body(client, db, employee, annual):
    await db.commit()
    resp = await client.post(
        "/api/v1/leave/requests",
        json={"leave_type_id": str(annual.id), "start_date": "not-a-date"},
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 422
    assert resp.json()["kind"] == "RequestValidation"
    assert "start_date" in resp.json()["errors"]


async def test_failed_submission_rolls_back(client, db, employee, annual):
    await db.commit()
    await client.post(
        "/api/v1/leave/requests",
        json=_body(annual.id, "2024-06-10", "2024-06-30"),  # 21 > 20
        headers=auth_headers_for(employee),
    )
    assert await _consumed(employee.id, annual.id) == 0


# ═════════════════════════════════════════════════════════════════════
# Transitions
# ═════════════════════════════════════════════════════════════════════


async def _submitted(client, employee, annual) -> str:
    resp = await client.post(
        "/api/v1/leave/requests",
        json=_body(annual.id, "2024-06-10", "2024-06-14"),
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 201
    return resp.json()["id"]


async def test_manager_approves(client, db, employee, manager, annual):
    await db.commit()
    request_id = await _submitted(client, employee, annual)

    resp = await client.put(
        f"/api/v1/leave/requests/{request_id}/approve",
        json={"remarks": "Enjoy"},
        headers=auth_headers_for(manager),
    )

    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert resp.json()["reviewed_by"] == str(manager.id)
    assert await _consumed(employee.id, annual.id) == 5


async def test_employee_cannot_approve(client, db, employee, annual):
    peer = await make_employee(db)
    await db.commit()
    request_id = await _submitted(client, employee, annual)

    resp = await client.put(
        f"/api/v1/leave/requests/{request_id}/approve",
        json={},
        headers=auth_headers_for(peer),
    )

    assert resp.status_code == 403
    assert resp.json()["kind"] == "Unauthorized"
    assert resp.json()["required_role"] == "manager"


async def test_reject_requires_reason_field(client, db, employee, manager, annual):
    await db.commit()
    request_id = await _submitted(client, employee, annual)

    resp = await client.put(
        f"/api/v1/leave/requests/{request_id}/reject",
        json={"reason": "   "},
        headers=auth_headers_for(manager),
    )

    assert resp.status_code == 422
    assert resp.json()["kind"] == "RejectionReasonRequired"


async def test_reject_releases_days(client, db, employee, manager, annual):
    await db.commit()
    request_id = await _submitted(client, employee, annual)

    resp = await client.put(
        f"/api/v1/leave/requests/{request_id}/reject",
        json={"reason": "Crunch week"},
        headers=auth_headers_for(manager),
    )

    assert resp.status_code == 200
    assert resp.json()["rejection_reason"] == "Crunch week"
    assert await _consumed(employee.id, annual.id) == 0


async def test_cancel_then_cancel_again(client, db, employee, annual):
    await db.commit()
    request_id = await _submitted(client, employee, annual)
    headers = auth_headers_for(employee)
    url = f"/api/v1/leave/requests/{request_id}/cancel"

    first = await client.put(url, json={}, headers=headers)
    second = await client.put(url, json={}, headers=headers)

    assert first.status_code == 200
    assert first.json()["status"] == "cancelled"
    assert second.status_code == 409
    assert second.json()["kind"] == "IllegalTransition"
    assert second.json()["from"] == "cancelled"
    assert second.json()["to"] == "cancelled"
    assert await _consumed(employee.id, annual.id) == 0


async def test_unknown_request_is_404(client, db, manager):
    await db.commit()
    resp = await client.put(
        f"/api/v1/leave/requests/{uuid.uuid4()}/approve",
        json={},
        headers=auth_headers_for(manager),
    )
    assert resp.status_code == 404
    assert resp.json()["kind"] == "LeaveRequestNotFound"


# ═════════════════════════════════════════════════════════════════════
# Listings & reads
# ═════════════════════════════════════════════════════════════════════


async def test_employee_lists_only_own(client, db, employee, manager, annual):
    colleague = await make_employee(db, reporting_manager_id=manager.id)
    await db.commit()
    await _submitted(client, employee, annual)
    await _submitted(client, colleague, annual)

    mine = await client.get("/api/v1/leave/requests", headers=auth_headers_for(employee))
    snoop = await client.get(
        "/api/v1/leave/requests",
        params={"employee_id": str(colleague.id)},
        headers=auth_headers_for(employee),
    )

    assert mine.status_code == 200
    assert mine.json()["meta"]["total"] == 1
    assert snoop.status_code == 403


async def test_admin_lists_everyone(client, db, employee, admin, annual):
    await db.commit()
    await _submitted(client, employee, annual)

    resp = await client.get("/api/v1/leave/requests", headers=auth_headers_for(admin))

    assert resp.status_code == 200
    assert resp.json()["meta"]["total"] == 1


async def test_my_requests(client, db, employee, annual):
    await db.commit()
    await _submitted(client, employee, annual)

    resp = await client.get("/api/v1/leave/my-requests", headers=auth_headers_for(employee))

    assert resp.status_code == 200
    assert [r["employee_id"] for r in resp.json()["data"]] == [str(employee.id)]


async def test_pending_approvals_requires_reviewer(client, db, employee, manager, annual):
    await db.commit()
    request_id = await _submitted(client, employee, annual)

    as_manager = await client.get(
        "/api/v1/leave/pending-approvals", headers=auth_headers_for(manager),
    )
    as_employee = await client.get(
        "/api/v1/leave/pending-approvals", headers=auth_headers_for(employee),
    )

    assert as_manager.status_code == 200
    assert [r["id"] for r in as_manager.json()["data"]] == [request_id]
    assert as_employee.status_code == 403


async def test_balances_types_and_statistics(client, db, employee, annual, sick):
    await db.commit()
    await _submitted(client, employee, annual)
    headers = auth_headers_for(employee)

    balances = await client.get("/api/v1/leave/balances", params={"year": 2024}, headers=headers)
    types = await client.get("/api/v1/leave/types", headers=headers)
    stats = await client.get("/api/v1/leave/statistics", headers=headers)

    assert balances.status_code == 200
    remaining = {b["leave_type"]["code"]: b["remaining_days"] for b in balances.json()}
    assert remaining == {"AL": 15, "SL": 12}

    assert types.status_code == 200
    earliest = {t["code"]: t["earliest_start_date"] for t in types.json()}
    assert earliest == {"AL": "2024-06-04", "SL": "2024-06-01"}

    # Year defaults to the clock's year
    assert stats.status_code == 200
    assert stats.json()["year"] == 2024
    assert stats.json()["totals"]["pending"] == 1


async def test_role_comes_from_directory(client, db, employee, annual):
    """A forged manager claim does not let an employee approve."""
    from leavedesk.auth import create_access_token

    peer = await make_employee(db)
    await db.commit()
    request_id = await _submitted(client, employee, annual)
    forged = create_access_token(peer.id, UserRole.manager)

    resp = await client.put(
        f"/api/v1/leave/requests/{request_id}/approve",
        json={},
        headers={"Authorization": f"Bearer {forged}"},
    )
    assert resp.status_code == 403
