"""Core HR module — the employee directory the leave core reads."""

from leavedesk.core_hr.models import Employee

__all__ = ["Employee"]
