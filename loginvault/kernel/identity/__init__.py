"""
Identity Core - login tokens, reset codes and password credentials.
"""

from loginvault.kernel.identity.password import PasswordHasher
from loginvault.kernel.identity.tokens import (
    decode_proquint,
    encode_proquint,
    generate_login_token,
    generate_reset_code,
    is_login_token,
    is_reset_code,
)
from loginvault.kernel.identity.login_tokens import LoginTokenManager
from loginvault.kernel.identity.reset_codes import ResetCodeManager
from loginvault.kernel.identity.credential_store import CredentialStore
from loginvault.kernel.identity.identity_service import IdentityService

__all__ = [
    "PasswordHasher",
    "encode_proquint",
    "decode_proquint",
    "generate_login_token",
    "generate_reset_code",
    "is_login_token",
    "is_reset_code",
    "LoginTokenManager",
    "ResetCodeManager",
    "CredentialStore",
    "IdentityService",
]
