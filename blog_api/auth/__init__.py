"""Users and the cookie-based demo login."""

from .models import AUTH_TABLES_CQL, User
from .service import UserService


__all__ = [
    "AUTH_TABLES_CQL",
    "User",
    "UserService",
]
