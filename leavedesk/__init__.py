"""LeaveDesk — leave-request management for the HR administration console."""

__version__ = "1.0.0"
