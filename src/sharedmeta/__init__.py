"""
sharedmeta - Shared Metadata Messaging Client

A client for exchanging signed, optionally end-to-end encrypted metadata
messages through an untrusted relay, with invitation-based pairing and
a per-identity trust list.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Import core modules for easy access
from .config import Config
from .constants import APP_NAME, VERSION
from .crypto import SharedKey, decrypt, derive_shared_key, encrypt
from .errors import (
    AuthenticationError,
    ConfigError,
    CryptoError,
    DecryptionError,
    ErrorCode,
    KeyFormatError,
    KeystoreError,
    ProtocolError,
    RemoteError,
    SharedMetaError,
    SigningError,
    TransportError,
    ValidationError,
)
from .identity import Identity
from .keystore import IdentityStore
from .models import Envelope, Invitation, TrustList
from .protocol import MessageProtocol
from .relay import InMemoryRelay
from .session import AuthState, SessionAuthenticator, SessionToken, is_token_valid
from .transport import Transport, TransportResponse

__all__ = [
    "APP_NAME",
    "VERSION",
    "AuthState",
    "AuthenticationError",
    "Config",
    "ConfigError",
    "CryptoError",
    "DecryptionError",
    "Envelope",
    "ErrorCode",
    "Identity",
    "IdentityStore",
    "InMemoryRelay",
    "Invitation",
    "KeyFormatError",
    "KeystoreError",
    "MessageProtocol",
    "ProtocolError",
    "RemoteError",
    "SessionAuthenticator",
    "SessionToken",
    "SharedKey",
    "SharedMetaError",
    "SigningError",
    "Transport",
    "TransportError",
    "TransportResponse",
    "TrustList",
    "ValidationError",
    "__license__",
    "__version__",
    "decrypt",
    "derive_shared_key",
    "encrypt",
    "is_token_valid",
]
