"""Leave balance ledger.

One ``leave_balances`` row per (employee, leave type, year) holding the
days taken by that employee's pending and approved requests. Days are
reserved when a request is submitted, kept when it is approved, and
released when it is rejected or cancelled.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

import sqlalchemy as sa
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.leave.exceptions import BalanceExceeded, LedgerUnderflow
from leavedesk.leave.models import LeaveBalance, LeaveType
from leavedesk.leave.schemas import LeaveBalanceOut, LeaveTypeBrief

logger = logging.getLogger(__name__)


class LeaveLedger:
    """Reserve and release days against ``leave_balances``.

    Both writes are single ``UPDATE ... SET consumed_days = consumed_days
    ± n`` statements guarded in their ``WHERE`` clause, so concurrent
    transitions on the same key never overwrite one another's totals.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @staticmethod
    def _key(employee_id: uuid.UUID, leave_type_id: uuid.UUID, year: int):
        return (
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )

    async def _row(
        self,
        employee_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
    ) -> Optional[LeaveBalance]:
        result = await self.db.execute(
            select(LeaveBalance)
            .where(*self._key(employee_id, leave_type_id, year))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _shift(
        self,
        employee_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
        delta: int,
        guard,
    ) -> bool:
        """Add *delta* to the row in one statement if *guard* still holds."""
        result = await self.db.execute(
            update(LeaveBalance)
            .where(*self._key(employee_id, leave_type_id, year), guard)
            .values(
                consumed_days=LeaveBalance.consumed_days + delta,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def consumed(
        self,
        employee_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
    ) -> int:
        """Days currently held for the key; 0 if nothing was ever reserved."""
        row = await self._row(employee_id, leave_type_id, year)
        return row.consumed_days if row else 0

    async def reserve(
        self,
        employee_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
        days: int,
        *,
        cap: Optional[int] = None,
    ) -> int:
        """Hold *days* for the key and return the new consumed total.

        With *cap* set, a reservation that would push the total past it is
        refused with ``BalanceExceeded``.
        """
        if days <= 0:
            raise ValueError(f"days must be positive, got {days}")

        row = await self._row(employee_id, leave_type_id, year)
        if row is None:
            if cap is not None and days > cap:
                raise BalanceExceeded(max(cap, 0))
            # First reservation for the key; concurrent submissions for one
            # employee are serialized before they get here.
            self.db.add(
                LeaveBalance(
                    employee_id=employee_id,
                    leave_type_id=leave_type_id,
                    year=year,
                    consumed_days=days,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            await self.db.flush()
            return days

        guard = (
            LeaveBalance.consumed_days + days <= cap
            if cap is not None
            else sa.true()
        )
        if not await self._shift(employee_id, leave_type_id, year, days, guard):
            current = await self.consumed(employee_id, leave_type_id, year)
            raise BalanceExceeded(max(cap - current, 0))
        return await self.consumed(employee_id, leave_type_id, year)

    async def release(
        self,
        employee_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
        days: int,
    ) -> int:
        """Give back *days* previously reserved and return the new total."""
        if days <= 0:
            raise ValueError(f"days must be positive, got {days}")

        guard = LeaveBalance.consumed_days >= days
        if not await self._shift(employee_id, leave_type_id, year, -days, guard):
            current = await self.consumed(employee_id, leave_type_id, year)
            error = LedgerUnderflow(
                employee_id, leave_type_id, year, consumed=current, requested=days,
            )
            logger.error("%s", error)
            raise error
        return await self.consumed(employee_id, leave_type_id, year)

    async def summary(
        self,
        employee_id: uuid.UUID,
        year: int,
        leave_types: Iterable[LeaveType],
    ) -> list[LeaveBalanceOut]:
        """Consumed and remaining days for each of *leave_types*."""
        result = await self.db.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.year == year,
            )
            .execution_options(populate_existing=True)
        )
        consumed_by_type = {
            row.leave_type_id: row.consumed_days for row in result.scalars().all()
        }

        output: list[LeaveBalanceOut] = []
        for lt in leave_types:
            consumed = consumed_by_type.get(lt.id, 0)
            output.append(
                LeaveBalanceOut(
                    leave_type=LeaveTypeBrief.model_validate(lt),
                    year=year,
                    max_days_per_year=lt.max_days_per_year,
                    consumed_days=consumed,
                    remaining_days=max(lt.max_days_per_year - consumed, 0),
                )
            )
        return output
