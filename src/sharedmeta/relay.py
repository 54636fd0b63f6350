"""
sharedmeta - In-process relay.

A Transport that plays the relay's role inside the current process, for
local development and tests. It issues single-use challenges, signs bearer
tokens with an HMAC secret and keeps messages, invitations and trust lists
in plain dictionaries.

Like the real relay it is untrusted: it never checks envelope signatures,
so clients must verify what they fetch.
"""

import functools
import logging
import secrets
import time
import uuid
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Set

import jwt

from . import crypto
from .constants import RELAY_TOKEN_ALGORITHM, RELAY_TOKEN_LIFETIME
from .identity import Identity
from .transport import Transport, TransportResponse

logger = logging.getLogger(__name__)


def _ok(body: Any = None) -> TransportResponse:
    return TransportResponse(200, "OK", body)


def _error(status: int, reason: str) -> TransportResponse:
    return TransportResponse(status, reason, {"error": reason})


def _authenticated(method: Callable[..., TransportResponse]) -> Callable[..., TransportResponse]:
    """Resolve the bearer token to an address and run under the relay lock."""

    @functools.wraps(method)
    def wrapper(self: "InMemoryRelay", token: str, *args: Any) -> TransportResponse:
        address = self._authorize(token)
        if address is None:
            return _error(401, "Unauthorized")
        with self._lock:
            return method(self, address, *args)

    return wrapper


class InMemoryRelay(Transport):
    """Relay service held in memory.

    Attributes:
        messages: Stored envelopes keyed by message id
        invitations: Invitations keyed by invitation id
        trusted: Trusted addresses keyed by owner address
    """

    def __init__(
        self,
        secret: Optional[bytes] = None,
        token_lifetime: int = RELAY_TOKEN_LIFETIME,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret or secrets.token_bytes(32)
        self.token_lifetime = token_lifetime
        self._clock = clock
        self._lock = Lock()
        self._nonces: Set[str] = set()
        self.messages: Dict[str, Dict[str, Any]] = {}
        self.invitations: Dict[str, Dict[str, Any]] = {}
        self.trusted: Dict[str, Set[str]] = {}

    def _issue_token(self, address: str) -> str:
        now = int(self._clock())
        claims = {
            "sub": address,
            "iat": now,
            "exp": now + self.token_lifetime,
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(claims, self._secret, algorithm=RELAY_TOKEN_ALGORITHM)

    def _authorize(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[RELAY_TOKEN_ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected bearer token: {e}")
            return None

        if self._clock() >= claims.get("exp", 0):
            logger.debug(f"Rejected expired bearer token for {claims.get('sub')}")
            return None
        return claims.get("sub")

    # Authentication

    def get_challenge(self) -> TransportResponse:
        nonce = crypto.generate_nonce()
        with self._lock:
            self._nonces.add(nonce)
        return _ok({"nonce": nonce})

    def exchange_token(
        self, address: str, public_key: str, signature: str, nonce: str
    ) -> TransportResponse:
        with self._lock:
            if nonce not in self._nonces:
                return _error(401, "Unknown or reused nonce")
            self._nonces.discard(nonce)

        if not Identity.verify(nonce, signature, address, public_key):
            logger.warning(f"Challenge signature rejected for {address}")
            return _error(401, "Invalid challenge signature")

        logger.info(f"Issued token for {address}")
        return _ok({"token": self._issue_token(address)})

    # Trust list

    @_authenticated
    def get_trust_list(self, owner: str) -> TransportResponse:
        return _ok({"mdid": owner, "contacts": sorted(self.trusted.get(owner, ()))})

    @_authenticated
    def get_trust_entry(self, owner: str, address: str) -> TransportResponse:
        contacts = [address] if address in self.trusted.get(owner, ()) else []
        return _ok({"mdid": owner, "contacts": contacts})

    @_authenticated
    def put_trust_entry(self, owner: str, address: str) -> TransportResponse:
        self.trusted.setdefault(owner, set()).add(address)
        return _ok({"mdid": owner, "contact": address})

    @_authenticated
    def delete_trust_entry(self, owner: str, address: str) -> TransportResponse:
        contacts = self.trusted.get(owner, set())
        if address not in contacts:
            return _error(404, "Not Found")
        contacts.discard(address)
        return _ok()

    # Messages

    @_authenticated
    def post_message(self, sender: str, envelope: Dict[str, Any]) -> TransportResponse:
        if envelope.get("sender") != sender:
            return _error(403, "Sender does not match token")
        if not envelope.get("recipient"):
            return _error(400, "Missing recipient")

        stored = {
            "id": str(uuid.uuid4()),
            "sender": sender,
            "recipient": envelope["recipient"],
            "payload": envelope.get("payload"),
            "signature": envelope.get("signature"),
            "sender_key": envelope.get("sender_key"),
            "type": envelope.get("type", 0),
            "processed": False,
            "created": int(self._clock() * 1000),
        }
        self.messages[stored["id"]] = stored
        return _ok(dict(stored))

    @_authenticated
    def get_messages(self, recipient: str, only_unprocessed: bool) -> TransportResponse:
        found: List[Dict[str, Any]] = [
            dict(message)
            for message in self.messages.values()
            if message["recipient"] == recipient and not (only_unprocessed and message["processed"])
        ]
        return _ok(found)

    @_authenticated
    def get_message(self, recipient: str, message_id: str) -> TransportResponse:
        message = self.messages.get(message_id)
        if message is None or message["recipient"] != recipient:
            return _error(404, "Not Found")
        return _ok(dict(message))

    @_authenticated
    def set_message_processed(
        self, recipient: str, message_id: str, processed: bool
    ) -> TransportResponse:
        message = self.messages.get(message_id)
        if message is None or message["recipient"] != recipient:
            return _error(404, "Not Found")
        message["processed"] = bool(processed)
        return _ok()

    # Invitations

    @_authenticated
    def create_invitation(self, creator: str) -> TransportResponse:
        invitation = {"id": str(uuid.uuid4()), "mdid": creator, "contact": None}
        self.invitations[invitation["id"]] = invitation
        return _ok(dict(invitation))

    @_authenticated
    def accept_invitation(self, contact: str, invite_id: str) -> TransportResponse:
        invitation = self.invitations.get(invite_id)
        if invitation is None:
            return _error(404, "Not Found")
        if invitation["mdid"] == contact:
            return _error(400, "Cannot accept own invitation")
        if invitation["contact"] is not None:
            return _error(409, "Invitation already accepted")
        invitation["contact"] = contact
        return _ok(dict(invitation))

    @_authenticated
    def resolve_invitation(self, address: str, invite_id: str) -> TransportResponse:
        invitation = self.invitations.get(invite_id)
        if invitation is None:
            return _error(404, "Not Found")
        if address not in (invitation["mdid"], invitation["contact"]):
            return _error(403, "Forbidden")
        return _ok(dict(invitation))

    @_authenticated
    def delete_invitation(self, creator: str, invite_id: str) -> TransportResponse:
        invitation = self.invitations.get(invite_id)
        if invitation is None:
            return _error(404, "Not Found")
        if invitation["mdid"] != creator:
            return _error(403, "Forbidden")
        del self.invitations[invite_id]
        return _ok()
