"""
sharedmeta - Shared metadata messaging protocol.

Composes an Identity, a SessionAuthenticator and a Transport into the
client-facing operations: signed message exchange, invitations, trust list
management and pairwise encryption.

Every authenticated call ensures a valid token first and maps any non-2xx
relay response to RemoteError. Inbound envelopes are signature-checked
before they are returned.
"""

import logging
import time
from typing import Any, Callable, List, Optional

from . import crypto
from .config import Config
from .errors import ErrorCode, ProtocolError, RemoteError, ValidationError
from .identity import Identity
from .models import Envelope, Invitation, TrustList
from .session import SessionAuthenticator
from .transport import Transport, TransportResponse

logger = logging.getLogger(__name__)


class MessageProtocol:
    """Client for one identity talking to a relay.

    Attributes:
        identity: Local identity (signing and key agreement)
        transport: Relay transport
        authenticator: Bearer token manager for this identity
    """

    def __init__(
        self,
        identity: Identity,
        transport: Transport,
        authenticator: Optional[SessionAuthenticator] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.identity = identity
        self.transport = transport
        self.authenticator = authenticator or SessionAuthenticator(identity, transport, clock)

    @classmethod
    def from_config(cls, identity: Identity, config: Config) -> "MessageProtocol":
        """Build a client speaking HTTP to the relay named in configuration."""
        from .http_transport import HttpTransport

        transport = HttpTransport(
            config.get("api", "url"),
            timeout=config.get("api", "timeout"),
            user_agent=config.get("api", "user_agent"),
        )
        return cls(identity, transport)

    @property
    def address(self) -> str:
        return self.identity.address

    @property
    def public_key_export(self) -> str:
        return self.identity.public_key_export

    def _call(self, operation: str, *args: Any) -> Any:
        token = self.authenticator.ensure_token()
        response: TransportResponse = getattr(self.transport, operation)(token, *args)
        if not response.ok:
            logger.debug(f"{operation} failed: {response.status} {response.reason}")
            raise RemoteError(response.status, response.reason, {"operation": operation})
        return response.body

    # Messages

    def send_message(self, recipient: Optional[str], payload: str, message_type: int) -> Envelope:
        """Sign and submit a message.

        Args:
            recipient: Recipient address
            payload: Message payload (plaintext or ciphertext text)
            message_type: Integer type tag

        Returns:
            Envelope as acknowledged by the relay

        Raises:
            ProtocolError: If recipient is missing
            AuthenticationError: If a token cannot be obtained
            RemoteError: If the relay rejects the message
        """
        if not recipient:
            raise ProtocolError(ErrorCode.E401_MISSING_RECIPIENT, "Recipient address is required")

        envelope = Envelope(
            sender=self.address,
            recipient=recipient,
            payload=payload,
            signature=self.identity.sign(payload),
            type=message_type,
            sender_key=self.public_key_export,
        )
        body = self._call("post_message", envelope.to_dict())
        stored = Envelope.from_dict(body)
        logger.debug(f"Message {stored.id} sent to {recipient}")
        return stored

    def validate_envelope(self, envelope: Envelope) -> None:
        """Check that an envelope was signed by its claimed sender.

        Raises:
            ValidationError: If the sender key, address or signature disagree
        """
        if not envelope.sender_key:
            raise ValidationError("Message carries no sender key", envelope, {"id": envelope.id})

        if not Identity.verify(envelope.payload, envelope.signature, envelope.sender, envelope.sender_key):
            raise ValidationError(
                "Signature is not well-formed",
                envelope,
                {"id": envelope.id, "sender": envelope.sender},
            )

    def fetch_messages(
        self,
        only_unprocessed: bool = True,
        on_invalid: Optional[Callable[[ValidationError], None]] = None,
    ) -> List[Envelope]:
        """Retrieve and verify messages addressed to this identity.

        Args:
            only_unprocessed: Only return messages not yet marked processed
            on_invalid: Called with the ValidationError of each rejected
                message, which is then left out of the result. When None,
                the first rejected message aborts the fetch.

        Returns:
            Verified envelopes

        Raises:
            ValidationError: If a message fails verification and on_invalid is None
        """
        body = self._call("get_messages", only_unprocessed)
        if not isinstance(body, list):
            raise ProtocolError(ErrorCode.E403_MALFORMED_RESPONSE, "Expected a list of messages")

        verified = []
        for item in body:
            try:
                try:
                    envelope = Envelope.from_dict(item)
                except ProtocolError as e:
                    raise ValidationError(f"Malformed message: {e.message}", None, e.details) from e
                self.validate_envelope(envelope)
            except ValidationError as e:
                if on_invalid is None:
                    raise
                logger.warning(f"Rejected message {e.details.get('id')}: {e.message}")
                on_invalid(e)
                continue
            verified.append(envelope)
        return verified

    def fetch_message(self, message_id: str) -> Envelope:
        """Retrieve and verify one message.

        Raises:
            ValidationError: If the message fails verification
        """
        envelope = Envelope.from_dict(self._call("get_message", message_id))
        self.validate_envelope(envelope)
        return envelope

    def mark_processed(self, message_id: str, processed: bool = True) -> None:
        """Set the processed flag of a message."""
        self._call("set_message_processed", message_id, processed)

    # Invitations

    def create_invitation(self) -> Invitation:
        """Obtain a one-time invitation id for pairing."""
        return Invitation.from_dict(self._call("create_invitation"))

    def accept_invitation(self, invite_id: str) -> Invitation:
        """Bind someone else's invitation to this identity."""
        return Invitation.from_dict(self._call("accept_invitation", invite_id))

    def resolve_invitation(self, invite_id: str) -> str:
        """Get the address of the identity that accepted an invitation.

        Raises:
            ProtocolError: If nobody has accepted the invitation yet
        """
        invitation = Invitation.from_dict(self._call("resolve_invitation", invite_id))
        if not invitation.is_bound:
            raise ProtocolError(
                ErrorCode.E402_INVITATION_UNBOUND,
                f"Invitation {invite_id} has not been accepted",
            )
        return invitation.contact

    def delete_invitation(self, invite_id: str) -> bool:
        """Delete a one-time invitation id."""
        self._call("delete_invitation", invite_id)
        return True

    # Trust list

    def list_trusted(self) -> TrustList:
        """Get every address this identity trusts."""
        return TrustList.from_dict(self._call("get_trust_list"))

    def is_trusted(self, address: str) -> bool:
        """Check if an address is on the trust list."""
        return address in TrustList.from_dict(self._call("get_trust_entry", address))

    def add_trusted(self, address: str) -> bool:
        """Add an address to the trust list."""
        entry = TrustList.from_dict(self._call("put_trust_entry", address))
        return entry.contact == address

    def remove_trusted(self, address: str) -> bool:
        """Remove an address from the trust list."""
        self._call("delete_trust_entry", address)
        return True

    # Pairwise encryption

    def encrypt_for(self, remote_public_key_export: str, payload: str) -> str:
        """Encrypt a payload so only the owner of the remote key can read it."""
        return crypto.encrypt(self.identity.shared_key_for(remote_public_key_export), payload)

    def decrypt_from(self, remote_public_key_export: str, payload: str) -> str:
        """Decrypt a payload encrypted for this identity by the remote key's owner."""
        return crypto.decrypt(self.identity.shared_key_for(remote_public_key_export), payload)
