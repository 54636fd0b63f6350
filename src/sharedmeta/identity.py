"""
sharedmeta - Identity management.

Wraps a deterministic secp256k1 key-pair, derives the stable address and
exportable public identifier from it, signs outbound messages and verifies
signatures against arbitrary public keys.
"""

import base64
import binascii
import logging
from typing import Dict, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from . import crypto
from .constants import PRIVATE_KEY_SIZE, SEED_DERIVATION_INFO, SEED_MIN_SIZE, SIGNED_MESSAGE_PREFIX
from .errors import CryptoError, ErrorCode, KeyFormatError, SigningError

logger = logging.getLogger(__name__)

# Order of the secp256k1 base point
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def _frame_message(message: Union[bytes, str]) -> bytes:
    """Prefix a message so signatures cannot be replayed as other data types."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    if not isinstance(message, bytes):
        raise TypeError(f"message must be bytes or str, not {type(message).__name__}")
    return SIGNED_MESSAGE_PREFIX + message


class Identity:
    """
    Represents one participant: a secp256k1 key-pair and its derived address.

    The address and public key export are computed once at construction
    and never change.
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey):
        if not isinstance(getattr(private_key, "curve", None), ec.SECP256K1):
            raise CryptoError(ErrorCode.E107_CURVE_MISMATCH, "Identity keys must use secp256k1")

        self._private_key = private_key
        self._public_key = private_key.public_key()
        public_bytes = crypto.encode_public_key(self._public_key)
        self._address = crypto.derive_address(public_bytes)
        self._public_key_export = base64.b64encode(public_bytes).decode("ascii")

    @classmethod
    def from_seed(cls, seed: bytes) -> "Identity":
        """
        Derive an identity deterministically from seed bytes.

        The seed is expanded with HKDF-SHA256 and reduced into the valid
        scalar range [1, n - 1], so the same seed always yields the same
        key-pair and address.
        """
        if not isinstance(seed, bytes) or len(seed) < SEED_MIN_SIZE:
            raise CryptoError(
                ErrorCode.E104_KEY_GENERATION_FAILED,
                f"Seed must be at least {SEED_MIN_SIZE} bytes",
            )

        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=PRIVATE_KEY_SIZE,
            salt=None,
            info=SEED_DERIVATION_INFO,
        )
        expanded = int.from_bytes(hkdf.derive(seed), "big")
        scalar = expanded % (SECP256K1_ORDER - 1) + 1
        return cls(ec.derive_private_key(scalar, ec.SECP256K1()))

    @classmethod
    def generate(cls) -> "Identity":
        """Create an identity from a fresh random key-pair."""
        return cls(ec.generate_private_key(ec.SECP256K1()))

    @property
    def address(self) -> str:
        return self._address

    @property
    def public_key_export(self) -> str:
        return self._public_key_export

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._public_key

    @property
    def private_key(self) -> ec.EllipticCurvePrivateKey:
        return self._private_key

    def sign(self, message: Union[bytes, str]) -> str:
        """
        Sign a message with the identity key.

        Returns the DER-encoded ECDSA/SHA-256 signature as base64 text.

        Raises:
            SigningError: If the message type or key state is unusable
        """
        try:
            signature = self._private_key.sign(_frame_message(message), ec.ECDSA(hashes.SHA256()))
        except (TypeError, ValueError, UnsupportedAlgorithm) as e:
            raise SigningError(message=f"Cannot sign message: {e}") from e
        return base64.b64encode(signature).decode("ascii")

    @staticmethod
    def verify(
        message: Union[bytes, str],
        signature: str,
        claimed_address: str,
        public_key_export: str,
    ) -> bool:
        """
        Verify that a signature was produced by the owner of claimed_address.

        The presented public key must hash to claimed_address, and the
        signature must verify under that key. Any malformed input is
        reported as a failed verification, never as an exception.
        """
        try:
            public_key = crypto.load_public_key(public_key_export)
        except KeyFormatError as e:
            logger.debug(f"Rejecting signature with malformed sender key: {e}")
            return False

        derived_address = crypto.derive_address(crypto.encode_public_key(public_key))
        if derived_address != claimed_address:
            logger.debug(f"Sender key does not belong to claimed address {claimed_address}")
            return False

        try:
            der_signature = base64.b64decode(signature, validate=True)
            public_key.verify(der_signature, _frame_message(message), ec.ECDSA(hashes.SHA256()))
        except (InvalidSignature, binascii.Error, TypeError, ValueError):
            return False
        return True

    def shared_key_for(self, remote_public_key_export: str) -> crypto.SharedKey:
        """Derive the pairwise shared key with a remote identity."""
        return crypto.derive_shared_key(self._private_key, remote_public_key_export)

    def to_dict(self) -> Dict[str, str]:
        """Export identity to dictionary for encrypted storage."""
        private_value = self._private_key.private_numbers().private_value
        return {
            "private": base64.b64encode(private_value.to_bytes(PRIVATE_KEY_SIZE, "big")).decode("utf-8"),
            "public": self._public_key_export,
            "address": self._address,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Identity":
        """
        Import identity from dictionary.

        Raises:
            KeyFormatError: If the private key is malformed or the stored
                address does not match the key
        """
        try:
            private_bytes = base64.b64decode(data["private"], validate=True)
            scalar = int.from_bytes(private_bytes, "big")
            identity = cls(ec.derive_private_key(scalar, ec.SECP256K1()))
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise KeyFormatError(message=f"Invalid identity data: {e}") from e

        stored_address = data.get("address")
        if stored_address is not None and stored_address != identity.address:
            raise KeyFormatError(message="Stored address does not match identity key")
        return identity

    def __repr__(self) -> str:
        return f"Identity(address={self._address!r})"
