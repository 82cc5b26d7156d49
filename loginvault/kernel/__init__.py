"""
Stable Kernel Layer

- Identity Core (login tokens, reset codes, password credentials)
- Record stores (the only shared mutable state)
- Lifecycle notifications

Invariants:
- Single-use consumption is decided by guarded UPDATEs in the store, never
  by in-process locks or cached state
- Notifications are sent only after the state change has committed
"""

from loginvault.kernel.errors import (
    CredentialError,
    EntropySourceError,
    HashingError,
    NotFound,
    PersistenceError,
    Unauthorized,
)
from loginvault.kernel.models import LoginToken, Password, ResetCode, User

__all__ = [
    # Errors
    "CredentialError",
    "Unauthorized",
    "NotFound",
    "PersistenceError",
    "EntropySourceError",
    "HashingError",
    # Models
    "User",
    "LoginToken",
    "ResetCode",
    "Password",
]
