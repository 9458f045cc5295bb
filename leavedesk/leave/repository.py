"""Narrow persistence interfaces the leave core reads and writes through.

``EmployeeDirectory`` and ``LeaveTypeCatalog`` are read-only views of data
owned elsewhere in the console; ``LeaveRequestRepository`` is the durable
store for requests. All three operate on the caller's ``AsyncSession`` so a
whole submission or transition commits or rolls back together.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.common.constants import LeaveStatus
from leavedesk.common.pagination import PaginationMeta, paginate
from leavedesk.core_hr.models import Employee
from leavedesk.leave.exceptions import EmployeeNotFound
from leavedesk.leave.models import LeaveRequest, LeaveType

_REQUEST_OPTIONS = (
    selectinload(LeaveRequest.employee),
    selectinload(LeaveRequest.leave_type),
)


# ═════════════════════════════════════════════════════════════════════
# Employee directory
# ═════════════════════════════════════════════════════════════════════


class EmployeeDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, employee_id: uuid.UUID) -> Optional[Employee]:
        result = await self.db.execute(
            select(Employee).where(
                Employee.id == employee_id, Employee.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def require(self, employee_id: uuid.UUID) -> Employee:
        employee = await self.get(employee_id)
        if employee is None:
            raise EmployeeNotFound(employee_id)
        return employee

    async def lock(self, employee_id: uuid.UUID) -> Employee:
        """Load the employee row ``FOR UPDATE``.

        Concurrent submissions for the same employee queue on this row
        until the holder's transaction ends. SQLite ignores the clause.
        """
        result = await self.db.execute(
            select(Employee)
            .where(Employee.id == employee_id, Employee.is_active.is_(True))
            .with_for_update()
        )
        employee = result.scalars().first()
        if employee is None:
            raise EmployeeNotFound(employee_id)
        return employee

    async def direct_report_ids(self, manager_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(Employee.id).where(
                Employee.reporting_manager_id == manager_id,
                Employee.is_active.is_(True),
            )
        )
        return list(result.scalars().all())


# ═════════════════════════════════════════════════════════════════════
# Leave type catalog
# ═════════════════════════════════════════════════════════════════════


class LeaveTypeCatalog:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def resolve(self, leave_type_id: uuid.UUID) -> Optional[LeaveType]:
        """Active leave type by id; inactive types do not resolve."""
        result = await self.db.execute(
            select(LeaveType).where(
                LeaveType.id == leave_type_id,
                LeaveType.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def list_all(self, *, include_inactive: bool = False) -> list[LeaveType]:
        query = select(LeaveType).order_by(LeaveType.name)
        if not include_inactive:
            query = query.where(LeaveType.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())


# ═════════════════════════════════════════════════════════════════════
# Leave request store
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, **fields: Any) -> LeaveRequest:
        leave_request = LeaveRequest(**fields)
        self.db.add(leave_request)
        await self.db.flush()
        return leave_request

    async def get(
        self,
        request_id: uuid.UUID,
        *,
        refresh: bool = False,
    ) -> Optional[LeaveRequest]:
        """Load a request with its employee and leave type.

        ``refresh=True`` overwrites any stale copy already in the session,
        e.g. after a conditional UPDATE issued behind the ORM's back.
        """
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .options(*_REQUEST_OPTIONS)
        )
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalars().first()

    async def find_by_submission_key(
        self,
        employee_id: uuid.UUID,
        submission_key: str,
    ) -> Optional[LeaveRequest]:
        result = await self.db.execute(
            select(LeaveRequest).where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.submission_key == submission_key,
            )
        )
        return result.scalars().first()

    async def list_for_employee(
        self,
        employee_id: uuid.UUID,
        *,
        statuses: Optional[Iterable[LeaveStatus]] = None,
        year: Optional[int] = None,
    ) -> list[LeaveRequest]:
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.start_date)
        )
        if statuses is not None:
            query = query.where(LeaveRequest.status.in_(list(statuses)))
        if year is not None:
            query = query.where(
                LeaveRequest.start_date >= date(year, 1, 1),
                LeaveRequest.start_date <= date(year, 12, 31),
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def search(
        self,
        *,
        employee_ids: Optional[Sequence[uuid.UUID]] = None,
        status: Optional[LeaveStatus] = None,
        leave_type_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        oldest_first: bool = False,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[Sequence[LeaveRequest], PaginationMeta]:
        """Filtered, paginated listing. ``employee_ids=None`` means everyone."""
        order = LeaveRequest.created_at.asc() if oldest_first else LeaveRequest.created_at.desc()
        query = select(LeaveRequest).order_by(order, LeaveRequest.id)

        if employee_ids is not None:
            query = query.where(LeaveRequest.employee_id.in_(list(employee_ids)))
        if status:
            query = query.where(LeaveRequest.status == status)
        if leave_type_id:
            query = query.where(LeaveRequest.leave_type_id == leave_type_id)
        if from_date:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date:
            query = query.where(LeaveRequest.start_date <= to_date)

        return await paginate(
            self.db, query, page=page, page_size=page_size, options=_REQUEST_OPTIONS,
        )

    async def apply_transition(
        self,
        request_id: uuid.UUID,
        *,
        expected: LeaveStatus,
        target: LeaveStatus,
        values: dict[str, Any],
    ) -> bool:
        """Move *request_id* from *expected* to *target* in one statement.

        Returns ``False`` when the row is no longer in *expected*, i.e. a
        concurrent transition got there first.
        """
        result = await self.db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == request_id,
                LeaveRequest.status == expected,
            )
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
