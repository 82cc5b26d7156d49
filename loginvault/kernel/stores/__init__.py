"""
Persistence collaborators: a generic record store and the user store built on it.
"""

from loginvault.kernel.stores.record_store import RecordStore
from loginvault.kernel.stores.user_store import UserStore

__all__ = [
    "RecordStore",
    "UserStore",
]
