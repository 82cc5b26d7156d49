"""
Notification event definitions using Pydantic for validation.

Event names and payload keys are consumed by downstream mailers and
analytics as-is, so their wire spelling (camelCase keys, mixed separators in
names) must not change.
"""

import uuid
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class NotificationEvent(str, Enum):
    """Events emitted by the credential lifecycle."""

    LOGIN_TOKEN_EMAIL = "login_token_email"
    RESET_CODE_CREATED = "reset_code_created"
    USER_PASSWORD_CHANGED = "user-password-changed"


class EventPayload(BaseModel):
    """Base payload. Serialized by alias so field names stay on the wire format."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class LoginTokenEmail(EventPayload):
    """Login link ready to be mailed."""

    user_id: uuid.UUID = Field(alias="userId")
    username: str
    verified: bool
    email: str
    login_url: str = Field(alias="loginUrl")
    token: str


class ResetCodeCreated(EventPayload):
    """Password reset link ready to be mailed."""

    email: str
    username: str
    reset_url: str = Field(alias="resetUrl")


class UserPasswordChanged(EventPayload):
    """A user's password was set or replaced."""

    email: str
    username: str
