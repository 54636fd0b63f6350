"""
sharedmeta - Relay transport interface.

The protocol core never talks to the network directly. A Transport is
supplied at construction and performs one remote call per method, returning
the outcome as a TransportResponse. Transports do not retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class TransportResponse:
    """Outcome of one relay call.

    Attributes:
        status: HTTP-style status code
        reason: Status message, used in error reports
        body: JSON-decoded response body (None when empty)
    """

    status: int
    reason: str = ""
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(ABC):
    """Relay operations needed by the protocol.

    Every method except get_challenge and exchange_token receives the raw
    bearer token as its first argument. Network-level failures raise
    TransportError; remote failures are returned as non-2xx responses.
    """

    @abstractmethod
    def get_challenge(self) -> TransportResponse:
        """Request a single-use nonce. Body: {"nonce": str}."""

    @abstractmethod
    def exchange_token(
        self, address: str, public_key: str, signature: str, nonce: str
    ) -> TransportResponse:
        """Trade a signed nonce for a bearer token. Body: {"token": str}."""

    @abstractmethod
    def get_trust_list(self, token: str) -> TransportResponse:
        """Body: {"mdid": str, "contacts": [str]}."""

    @abstractmethod
    def get_trust_entry(self, token: str, address: str) -> TransportResponse:
        """Body: {"mdid": str, "contacts": [str]} filtered to address."""

    @abstractmethod
    def put_trust_entry(self, token: str, address: str) -> TransportResponse:
        """Body: {"mdid": str, "contact": str}."""

    @abstractmethod
    def delete_trust_entry(self, token: str, address: str) -> TransportResponse:
        """Remove address from the trust list."""

    @abstractmethod
    def post_message(self, token: str, envelope: Dict[str, Any]) -> TransportResponse:
        """Submit a signed envelope. Body: the stored envelope."""

    @abstractmethod
    def get_messages(self, token: str, only_unprocessed: bool) -> TransportResponse:
        """Body: list of envelopes addressed to the caller."""

    @abstractmethod
    def get_message(self, token: str, message_id: str) -> TransportResponse:
        """Body: one envelope."""

    @abstractmethod
    def set_message_processed(
        self, token: str, message_id: str, processed: bool
    ) -> TransportResponse:
        """Update the processed flag of a message."""

    @abstractmethod
    def create_invitation(self, token: str) -> TransportResponse:
        """Body: {"id": str, "mdid": str, "contact": None}."""

    @abstractmethod
    def accept_invitation(self, token: str, invite_id: str) -> TransportResponse:
        """Bind the invitation to the caller. Body: the invitation."""

    @abstractmethod
    def resolve_invitation(self, token: str, invite_id: str) -> TransportResponse:
        """Body: the invitation, with contact set once accepted."""

    @abstractmethod
    def delete_invitation(self, token: str, invite_id: str) -> TransportResponse:
        """Delete the invitation."""
