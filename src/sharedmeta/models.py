"""
sharedmeta - Protocol value objects.

Envelopes, invitations and trust lists exchanged with the relay, with
conversion to and from the relay's JSON shapes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import MESSAGE_TYPE_DEFAULT
from .errors import ErrorCode, ProtocolError


def _require_mapping(data: Any, kind: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ProtocolError(
            ErrorCode.E403_MALFORMED_RESPONSE,
            f"Expected a {kind} object, got {type(data).__name__}",
        )
    return data


@dataclass
class Envelope:
    """A signed, addressed message unit exchanged through the relay.

    The signature covers ``payload`` and must validate against
    ``sender_key`` and ``sender`` before the payload is trusted.
    """

    sender: str
    recipient: str
    payload: str
    signature: str
    type: int = MESSAGE_TYPE_DEFAULT
    sender_key: Optional[str] = None
    processed: bool = False
    id: Optional[str] = None
    created: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert envelope to the relay's JSON shape."""
        data = {
            "sender": self.sender,
            "recipient": self.recipient,
            "payload": self.payload,
            "signature": self.signature,
            "type": self.type,
            "sender_key": self.sender_key,
            "processed": self.processed,
        }
        if self.id is not None:
            data["id"] = self.id
        if self.created is not None:
            data["created"] = self.created
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Envelope":
        """Create envelope from a relay response body.

        Raises:
            ProtocolError: If required fields are missing
        """
        data = _require_mapping(data, "message")
        try:
            return cls(
                sender=data["sender"],
                recipient=data["recipient"],
                payload=data["payload"],
                signature=data["signature"],
                type=int(data.get("type", MESSAGE_TYPE_DEFAULT)),
                sender_key=data.get("sender_key"),
                processed=bool(data.get("processed", False)),
                id=data.get("id"),
                created=data.get("created"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(
                ErrorCode.E403_MALFORMED_RESPONSE,
                f"Malformed message from relay: {e}",
                {"id": data.get("id")},
            ) from e


@dataclass
class Invitation:
    """A single-use pairing ticket.

    ``contact`` stays None until a second identity accepts the invitation.
    """

    id: str
    mdid: Optional[str] = None
    contact: Optional[str] = None

    @property
    def is_bound(self) -> bool:
        return self.contact is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "mdid": self.mdid, "contact": self.contact}

    @classmethod
    def from_dict(cls, data: Any) -> "Invitation":
        data = _require_mapping(data, "invitation")
        if not data.get("id"):
            raise ProtocolError(
                ErrorCode.E403_MALFORMED_RESPONSE, "Invitation from relay has no id"
            )
        return cls(id=data["id"], mdid=data.get("mdid"), contact=data.get("contact"))


@dataclass
class TrustList:
    """Addresses trusted by ``mdid``."""

    mdid: Optional[str] = None
    contacts: List[str] = field(default_factory=list)
    contact: Optional[str] = None

    def __contains__(self, address: object) -> bool:
        return address in self.contacts

    def to_dict(self) -> Dict[str, Any]:
        return {"mdid": self.mdid, "contacts": list(self.contacts), "contact": self.contact}

    @classmethod
    def from_dict(cls, data: Any) -> "TrustList":
        data = _require_mapping(data, "trusted")
        contacts = data.get("contacts") or []
        if not isinstance(contacts, list):
            raise ProtocolError(
                ErrorCode.E403_MALFORMED_RESPONSE, "Trusted contacts must be a list"
            )
        return cls(mdid=data.get("mdid"), contacts=list(contacts), contact=data.get("contact"))
