"""Shared FastAPI dependencies."""

from app.db.session import get_db
from app.services.login_guard import get_login_guard

__all__ = ["get_db", "get_login_guard"]
