"""
User model for identity management.

The user record belongs to the surrounding account service. loginvault only
reads it and flips ``use_password_login``.
"""

import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loginvault.kernel.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from loginvault.kernel.models.credential import LoginToken, Password, ResetCode


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    username: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    pref_locale: Mapped[str] = mapped_column(
        String(16),
        default="en-US",
        nullable=False,
    )
    verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    use_password_login: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Relationships
    login_tokens: Mapped[List["LoginToken"]] = relationship(
        "LoginToken",
        back_populates="user",
        passive_deletes=True,
    )
    reset_codes: Mapped[List["ResetCode"]] = relationship(
        "ResetCode",
        back_populates="user",
        passive_deletes=True,
    )
    password: Mapped[Optional["Password"]] = relationship(
        "Password",
        back_populates="user",
        uselist=False,
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"
