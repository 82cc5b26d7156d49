"""
Credential artifacts owned by a user: login tokens, reset codes and the
current password hash.

Login tokens and reset codes are never deleted. They age out through the
TTL predicate in every lookup and are consumed by flipping ``used``.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loginvault.kernel.models.base import Base, TimestampMixin, generate_uuid, utc_now

if TYPE_CHECKING:
    from loginvault.kernel.models.user import User


class LoginToken(Base):
    """Short-lived, single-use token mailed as a login link."""

    __tablename__ = "login_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    # Set explicitly from the manager's clock; immutable afterwards
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="login_tokens")

    __table_args__ = (
        Index("ix_login_tokens_user_token", "user_id", "token"),
    )

    def __repr__(self) -> str:
        return f"<LoginToken user={self.user_id} used={self.used}>"


class ResetCode(Base):
    """High-entropy password reset code."""

    __tablename__ = "reset_codes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    # Only ever set on rows where used is still false
    invalid: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="reset_codes")

    __table_args__ = (
        Index("ix_reset_codes_user_code", "user_id", "code"),
    )

    def __repr__(self) -> str:
        return f"<ResetCode user={self.user_id} used={self.used} invalid={self.invalid}>"


class Password(Base, TimestampMixin):
    """The user's current salted password hash. At most one row per user."""

    __tablename__ = "passwords"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    salted_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    user: Mapped["User"] = relationship("User", back_populates="password")

    def __repr__(self) -> str:
        return f"<Password user={self.user_id}>"
