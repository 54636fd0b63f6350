"""
sharedmeta - Session Authentication

This module manages the bearer token used for authenticated relay calls.
Tokens are obtained through a challenge-response exchange and cached until
their embedded expiry passes.

Security features:
- Challenge nonces are signed with the identity key and never stored
- Validity is checked locally from the token's `exp` claim
- Unparseable tokens are treated as expired and refreshed
- Refreshes are serialized so concurrent callers share one round trip

Version: 1.0.0
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, Optional

import jwt

from .errors import AuthenticationError, ErrorCode
from .identity import Identity
from .transport import Transport, TransportResponse

logger = logging.getLogger(__name__)

# Token claims are read without verifying the relay's signature
_UNVERIFIED_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
}


def decode_token_claims(raw_token: str) -> Dict[str, Any]:
    """Decode the claims section of a compact token.

    Raises:
        jwt.InvalidTokenError: If the token is not a well-formed JWT
    """
    return jwt.decode(raw_token, options=_UNVERIFIED_OPTIONS)


def token_expiry(raw_token: Optional[str]) -> Optional[int]:
    """Extract the `exp` claim (Unix seconds), or None if it cannot be read."""
    if not raw_token:
        return None
    try:
        return int(decode_token_claims(raw_token)["exp"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as e:
        logger.debug(f"Unreadable session token, treating as expired: {e}")
        return None


def is_token_valid(raw_token: Optional[str], now: Optional[float] = None) -> bool:
    """Check whether a token is still usable.

    A token is valid while the current time in milliseconds is strictly
    before ``exp * 1000``. Parse failures count as invalid.
    """
    expiry = token_expiry(raw_token)
    if expiry is None:
        return False
    now_millis = int((time.time() if now is None else now) * 1000)
    return now_millis < expiry * 1000


@dataclass(frozen=True)
class SessionToken:
    """A bearer credential and its expiry.

    Attributes:
        raw: Opaque signed token string
        expires_at: Unix seconds from the `exp` claim (None if unreadable)
    """

    raw: str
    expires_at: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: str) -> "SessionToken":
        return cls(raw=raw, expires_at=token_expiry(raw))

    def is_valid(self, now: Optional[float] = None) -> bool:
        return is_token_valid(self.raw, now)

    def __repr__(self) -> str:
        return f"SessionToken(expires_at={self.expires_at})"


class AuthState(Enum):
    """Authentication lifecycle states."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class SessionAuthenticator:
    """Owns the bearer token for one identity.

    Attributes:
        identity: Identity that signs challenges
        transport: Relay transport used for the exchange
    """

    def __init__(
        self,
        identity: Identity,
        transport: Transport,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the authenticator.

        Args:
            identity: Identity whose key signs challenges
            transport: Transport for challenge and token exchange
            clock: Wall-clock source in Unix seconds
        """
        self.identity = identity
        self.transport = transport
        self._clock = clock
        self._lock = Lock()
        self._token: Optional[SessionToken] = None
        self._state = AuthState.UNAUTHENTICATED

    @property
    def state(self) -> AuthState:
        if self._state == AuthState.AUTHENTICATED and not self._token.is_valid(self._clock()):
            return AuthState.EXPIRED
        return self._state

    @property
    def token(self) -> Optional[SessionToken]:
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-authenticates."""
        with self._lock:
            self._token = None
            self._state = AuthState.UNAUTHENTICATED

    def ensure_token(self) -> str:
        """Return a valid bearer token, authenticating if needed.

        Only one refresh runs at a time; callers that were waiting reuse
        the token it produced.

        Returns:
            Raw bearer token

        Raises:
            AuthenticationError: If the challenge or token exchange fails
        """
        with self._lock:
            if self._token is not None:
                if self._token.is_valid(self._clock()):
                    return self._token.raw
                logger.warning(f"Session token for {self.identity.address} expired, re-authenticating")

            self._state = AuthState.AUTHENTICATING
            self._token = None
            try:
                token = self._authenticate()
            except Exception:
                self._state = AuthState.UNAUTHENTICATED
                raise

            self._token = token
            self._state = AuthState.AUTHENTICATED
            logger.info(f"Authenticated {self.identity.address} (expires at {token.expires_at})")
            return token.raw

    def _authenticate(self) -> SessionToken:
        nonce = self._request_challenge()
        signature = self.identity.sign(nonce)

        response = self.transport.exchange_token(
            self.identity.address,
            self.identity.public_key_export,
            signature,
            nonce,
        )
        raw = self._field(response, "token", ErrorCode.E302_TOKEN_EXCHANGE_FAILED)
        return SessionToken.from_raw(raw)

    def _request_challenge(self) -> str:
        response = self.transport.get_challenge()
        return self._field(response, "nonce", ErrorCode.E301_CHALLENGE_FAILED)

    @staticmethod
    def _field(response: TransportResponse, name: str, code: ErrorCode) -> str:
        if not response.ok:
            logger.warning(f"Authentication step failed: {response.status} {response.reason}")
            raise AuthenticationError(
                code,
                f"{response.status} {response.reason}".strip(),
                {"status": response.status},
            )

        value = response.body.get(name) if isinstance(response.body, dict) else None
        if not isinstance(value, str) or not value:
            raise AuthenticationError(code, f"Relay response has no {name}")
        return value
