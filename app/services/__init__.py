"""External collaborators and file readers."""

from app.services.spreadsheet import read_rows
from app.services.user_client import UserClient, get_user_client

__all__ = [
    "read_rows",
    "UserClient",
    "get_user_client",
]
