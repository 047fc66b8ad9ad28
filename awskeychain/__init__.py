"""
aws-keychain: keep AWS credentials in a local keychain and cache temporary sessions.

Long-lived access keys live in an (optionally SSH-key encrypted) keychain
file. MFA sessions and assumed-role sessions obtained from STS are cached
next to them and picked automatically until they expire.

Key features:
- Resolve the active credentials for a name: role session, MFA session, base key
- Expired sessions are purged whenever they are encountered
- 12-hour MFA sessions (GetSessionToken) and 1-hour role sessions (AssumeRole)
- SSH key-based encryption of secrets at rest
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config import Config
from .entries import MFA, ROLE, BaseCredential, RoleDefinition, Session
from .exceptions import (
    KeychainError,
    MalformedEntry,
    NotFound,
    RemoteError,
    RemoteRejected,
    ConfigError,
    StoreError,
    UsageError,
)
from .exchange import RoleChoice, TokenExchange
from .expiry import is_expired
from .keychain import Keychain
from .resolver import ActiveCredential, Resolver
from .store import Entry, SecretStore

__all__ = [
    # Engine
    "Resolver",
    "TokenExchange",
    "RoleChoice",
    "ActiveCredential",
    "is_expired",
    # Storage
    "Config",
    "Keychain",
    "SecretStore",
    "Entry",
    # Records
    "BaseCredential",
    "RoleDefinition",
    "Session",
    "MFA",
    "ROLE",
    # Errors
    "KeychainError",
    "NotFound",
    "MalformedEntry",
    "RemoteRejected",
    "RemoteError",
    "StoreError",
    "ConfigError",
    "UsageError",
]
