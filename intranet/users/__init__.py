"""User directory module — the User model read by the leave engine."""

from intranet.users.models import User

__all__ = ["User"]
