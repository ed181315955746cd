"""SQLAlchemy models for the auth state store."""

from authstate.models.auth_state import AuthStateRow
from authstate.models.base import Base

__all__ = ["AuthStateRow", "Base"]
