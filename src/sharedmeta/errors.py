"""
sharedmeta - Custom Exception Classes and Error Codes

This module defines all custom exceptions and error codes used throughout
the sharedmeta client. Each error has a unique code for logging and debugging.

Version: 1.0.0
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Enumeration of all sharedmeta error codes."""

    # General Errors (E001-E099)
    E001_UNKNOWN_ERROR = "E001"
    E002_INVALID_ARGUMENT = "E002"

    # Crypto Errors (E100-E199)
    E100_CRYPTO_ERROR = "E100"
    E101_ENCRYPTION_FAILED = "E101"
    E102_DECRYPTION_FAILED = "E102"
    E103_INVALID_KEY = "E103"
    E104_KEY_GENERATION_FAILED = "E104"
    E105_SIGNATURE_FAILED = "E105"
    E106_VERIFICATION_FAILED = "E106"
    E107_CURVE_MISMATCH = "E107"
    E108_KEY_DERIVATION_FAILED = "E108"

    # Remote / Network Errors (E200-E299)
    E200_REMOTE_ERROR = "E200"
    E201_CONNECTION_FAILED = "E201"
    E202_CONNECTION_TIMEOUT = "E202"

    # Authentication Errors (E300-E399)
    E300_AUTHENTICATION_ERROR = "E300"
    E301_CHALLENGE_FAILED = "E301"
    E302_TOKEN_EXCHANGE_FAILED = "E302"

    # Protocol Errors (E400-E499)
    E400_PROTOCOL_ERROR = "E400"
    E401_MISSING_RECIPIENT = "E401"
    E402_INVITATION_UNBOUND = "E402"
    E403_MALFORMED_RESPONSE = "E403"

    # Keystore Errors (E500-E599)
    E500_KEYSTORE_ERROR = "E500"
    E501_KEYSTORE_NOT_FOUND = "E501"
    E502_KEYSTORE_ALREADY_EXISTS = "E502"
    E503_KEYSTORE_LOAD_FAILED = "E503"
    E504_KEYSTORE_SAVE_FAILED = "E504"
    E505_BAD_PASSWORD = "E505"

    # Config Errors (E700-E799)
    E700_CONFIG_ERROR = "E700"
    E701_CONFIG_LOAD_FAILED = "E701"
    E702_CONFIG_SAVE_FAILED = "E702"
    E704_CONFIG_PARSE_ERROR = "E704"


class SharedMetaError(Exception):
    """Base exception class for all sharedmeta errors.

    Attributes:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        details: Additional error details (optional)
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize a sharedmeta error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            details: Additional error context (optional)
        """
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization.

        Returns:
            Dictionary containing error information
        """
        return {"code": self.code.value, "message": self.message, "details": self.details}


class CryptoError(SharedMetaError):
    """Exception raised for cryptographic operation failures.

    This includes key agreement, curve mismatches and key generation.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E100_CRYPTO_ERROR,
        message: str = "Cryptographic operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class KeyFormatError(CryptoError):
    """Exception raised when a public key export cannot be parsed."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E103_INVALID_KEY,
        message: str = "Malformed public key",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class SigningError(CryptoError):
    """Exception raised when a message cannot be signed."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E105_SIGNATURE_FAILED,
        message: str = "Signing failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class DecryptionError(CryptoError):
    """Exception raised for authentication tag mismatches or malformed ciphertext.

    Decryption never returns partially decrypted or unauthenticated data.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E102_DECRYPTION_FAILED,
        message: str = "Decryption failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ValidationError(SharedMetaError):
    """Exception raised when an inbound envelope fails signature validation.

    The envelope's content must be treated as untrusted. The rejected
    envelope is available as ``envelope`` so callers can decide whether to
    skip it or abort.
    """

    def __init__(
        self,
        message: str = "Signature is not well-formed",
        envelope: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.envelope = envelope
        super().__init__(ErrorCode.E106_VERIFICATION_FAILED, message, details)


class RemoteError(SharedMetaError):
    """Exception raised for any non-success response from the relay.

    Attributes:
        status: HTTP-style status code returned by the transport
        reason: Status message returned by the transport
    """

    def __init__(self, status: int, reason: str = "", details: Optional[Dict[str, Any]] = None):
        self.status = status
        self.reason = reason
        super().__init__(ErrorCode.E200_REMOTE_ERROR, f"{status} {reason}".strip(), details)


class TransportError(SharedMetaError):
    """Exception raised when a transport cannot reach the relay at all."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E201_CONNECTION_FAILED,
        message: str = "Transport operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class AuthenticationError(SharedMetaError):
    """Exception raised when the challenge or token exchange fails."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E300_AUTHENTICATION_ERROR,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ProtocolError(SharedMetaError):
    """Exception raised for caller misuse and protocol violations.

    This includes missing recipients, resolving unbound invitations and
    relay responses lacking required fields.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E400_PROTOCOL_ERROR,
        message: str = "Protocol violation",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class KeystoreError(SharedMetaError):
    """Exception raised for identity keystore failures.

    This includes loading, saving and password verification.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E500_KEYSTORE_ERROR,
        message: str = "Keystore operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ConfigError(SharedMetaError):
    """Exception raised for configuration failures.

    This includes loading, parsing, and validating configuration files.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E700_CONFIG_ERROR,
        message: str = "Configuration operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)
