"""Notifications module — in-app inbox rows for leave events."""

from leavedesk.notifications.models import Notification

__all__ = ["Notification"]
