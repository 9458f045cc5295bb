"""Leave module — submission validation, balance ledger, approval workflow."""

from leavedesk.leave.exceptions import (
    IllegalTransition,
    LedgerUnderflow,
    LeaveRequestError,
    Unauthorized,
)

__all__ = [
    "IllegalTransition",
    "LedgerUnderflow",
    "LeaveRequestError",
    "Unauthorized",
]
