"""
Lifecycle notifications.

Events are handed to a Notifier after the state change commits and
delivered asynchronously.
"""

from loginvault.kernel.events.event_types import (
    NotificationEvent,
    EventPayload,
    LoginTokenEmail,
    ResetCodeCreated,
    UserPasswordChanged,
)
from loginvault.kernel.events.notifier import (
    Notifier,
    EventTransport,
    LoggingEventTransport,
    HttpEventTransport,
    QueuedNotifier,
    build_notifier,
    notify_safely,
)

__all__ = [
    "NotificationEvent",
    "EventPayload",
    "LoginTokenEmail",
    "ResetCodeCreated",
    "UserPasswordChanged",
    "Notifier",
    "EventTransport",
    "LoggingEventTransport",
    "HttpEventTransport",
    "QueuedNotifier",
    "build_notifier",
    "notify_safely",
]
