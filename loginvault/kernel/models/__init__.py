"""
Kernel Data Models

SQLAlchemy models for users and the credential artifacts they own.
"""

from loginvault.kernel.models.base import Base, TimestampMixin, generate_uuid, utc_now
from loginvault.kernel.models.user import User
from loginvault.kernel.models.credential import LoginToken, Password, ResetCode

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "utc_now",
    # User
    "User",
    # Credentials
    "LoginToken",
    "ResetCode",
    "Password",
]
