"""Common module — shared utilities for LeaveDesk."""

from leavedesk.common.audit import AuditTrail, create_audit_entry
from leavedesk.common.constants import (
    ACTIVE_LEAVE_STATUSES,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    LeaveAction,
    LeaveStatus,
    NotificationType,
    UserRole,
)
from leavedesk.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    register_exception_handlers,
)
from leavedesk.common.locks import KeyedLock, submission_locks
from leavedesk.common.pagination import PaginationMeta, PaginationParams, paginate

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "ACTIVE_LEAVE_STATUSES",
    "LeaveAction",
    "LeaveStatus",
    "NotificationType",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "register_exception_handlers",
    # Locks
    "KeyedLock",
    "submission_locks",
    # Pagination
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
