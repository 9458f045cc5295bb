"""Notification service — inbox writes and the leave event dispatcher."""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import NotificationType
from leavedesk.notifications.models import Notification

logger = logging.getLogger(__name__)


# ── Core service ────────────────────────────────────────────────────


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        kind: str,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        """Create a new notification and flush to DB."""
        notification = Notification(
            recipient_id=recipient_id,
            kind=kind,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification


# ── Leave events ────────────────────────────────────────────────────


class LeaveEventKind(str, enum.Enum):
    submitted = "leave_submitted"
    approved = "leave_approved"
    rejected = "leave_rejected"
    cancelled = "leave_cancelled"


@dataclass(frozen=True)
class LeaveEvent:
    """A leave status change addressed to one recipient."""

    request_id: uuid.UUID
    kind: LeaveEventKind
    recipient_id: uuid.UUID
    summary: str
    reason: Optional[str] = None


class LeaveNotifier(Protocol):
    async def emit(self, event: LeaveEvent) -> None:
        ...


_TEMPLATES: dict[LeaveEventKind, tuple[NotificationType, str, str]] = {
    LeaveEventKind.submitted: (
        NotificationType.action_required,
        "New Leave Request",
        "A leave request for {summary} requires your approval.",
    ),
    LeaveEventKind.approved: (
        NotificationType.approval,
        "Leave Request Approved",
        "Your leave request for {summary} has been approved.",
    ),
    LeaveEventKind.rejected: (
        NotificationType.alert,
        "Leave Request Rejected",
        "Your leave request for {summary} was rejected. Reason: {reason}",
    ),
    LeaveEventKind.cancelled: (
        NotificationType.info,
        "Leave Cancelled",
        "The leave request for {summary} has been cancelled by the employee.",
    ),
}


class InboxNotifier:
    """Delivers leave events as in-app notifications in the same transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def emit(self, event: LeaveEvent) -> None:
        type_, title, template = _TEMPLATES[event.kind]
        await NotificationService.create_notification(
            self.db,
            recipient_id=event.recipient_id,
            kind=event.kind.value,
            type=type_,
            title=title,
            message=template.format(summary=event.summary, reason=event.reason or ""),
            action_url=f"/leave/requests/{event.request_id}",
            entity_type="leave_request",
            entity_id=event.request_id,
        )
        logger.debug(
            "Queued %s notification for %s (request %s)",
            event.kind.value, event.recipient_id, event.request_id,
        )
