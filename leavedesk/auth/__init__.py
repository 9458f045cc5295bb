"""Auth module — JWT issue/verify and the current-employee dependencies."""

from leavedesk.auth.security import create_access_token, decode_access_token

__all__ = ["create_access_token", "decode_access_token"]
