"""
sharedmeta - Cryptographic operations.

This module implements the pairwise end-to-end encryption layer:
- secp256k1 public key export/import (compressed SEC1, base64)
- Address derivation from public keys
- ECDH key agreement hashed with SHA-256 into a 256-bit shared key
- AES-256-GCM authenticated encryption with text-safe output
- Argon2id + AES-256-GCM protection of identity material at rest

All cryptographic operations use well-tested, open-source libraries:
- cryptography library (Apache 2.0/BSD License)
- argon2-cffi (MIT License)
"""

import base64
import binascii
import hmac
import json
import os
import secrets
from typing import Any, Dict

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .constants import (
    ADDRESS_SIZE,
    ARGON2_MEMORY_COST,
    ARGON2_PARALLELISM,
    ARGON2_TIME_COST,
    CHALLENGE_NONCE_BYTES,
    KEYSTORE_VERSION,
    NONCE_SIZE,
    SALT_SIZE,
    SHARED_KEY_SIZE,
    TAG_SIZE,
)
from .errors import CryptoError, DecryptionError, ErrorCode, KeyFormatError


class SharedKey:
    """
    Symmetric key derived from an ECDH shared secret.

    Held only for the duration of one encrypt/decrypt call. The key material
    is never rendered by repr() so it cannot leak into logs.
    """

    __slots__ = ("_material",)

    def __init__(self, material: bytes):
        if not isinstance(material, bytes) or len(material) != SHARED_KEY_SIZE:
            raise CryptoError(
                ErrorCode.E108_KEY_DERIVATION_FAILED,
                f"Shared key must be {SHARED_KEY_SIZE} bytes",
            )
        self._material = material

    @property
    def material(self) -> bytes:
        return self._material

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SharedKey):
            return NotImplemented
        return hmac.compare_digest(self._material, other._material)

    __hash__ = None

    def __repr__(self) -> str:
        return "SharedKey(<redacted>)"


def encode_public_key(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Get public key as a compressed SEC1 point (33 bytes)."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.CompressedPoint,
    )


def export_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """Serialize a public key into its exportable base64 form."""
    return base64.b64encode(encode_public_key(public_key)).decode("ascii")


def load_public_key(public_key_export: str) -> ec.EllipticCurvePublicKey:
    """
    Reconstruct a secp256k1 public key from its exported form.

    Accepts compressed or uncompressed SEC1 points encoded with base64.

    Raises:
        KeyFormatError: If the export is not base64 or not a point on the curve
    """
    if not isinstance(public_key_export, str) or not public_key_export:
        raise KeyFormatError(message="Public key export must be a non-empty string")

    try:
        point = base64.b64decode(public_key_export, validate=True)
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), point)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError(
            message=f"Cannot parse public key export: {e}",
            details={"length": len(public_key_export)},
        ) from e


def derive_address(public_key_bytes: bytes) -> str:
    """
    Derive the stable network address for a compressed public key.

    The address is the first ADDRESS_SIZE bytes of SHA-256 over the
    compressed point, as 40 lowercase hexadecimal characters.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(public_key_bytes)
    return digest.finalize()[:ADDRESS_SIZE].hex()


def derive_shared_key(
    local_private_key: ec.EllipticCurvePrivateKey, remote_public_key_export: str
) -> SharedKey:
    """
    Derive the pairwise symmetric key shared with a remote party.

    The remote point is multiplied by the local private scalar (ECDH) and
    the resulting shared secret is hashed with SHA-256. Deriving from
    (A private, B public) equals deriving from (B private, A public).

    Raises:
        KeyFormatError: If the remote export cannot be parsed
        CryptoError: If the local key is not on secp256k1 or the exchange fails
    """
    remote_public_key = load_public_key(remote_public_key_export)

    if not isinstance(getattr(local_private_key, "curve", None), ec.SECP256K1):
        raise CryptoError(
            ErrorCode.E107_CURVE_MISMATCH,
            "Local private key is not a secp256k1 key",
        )

    try:
        shared_secret = local_private_key.exchange(ec.ECDH(), remote_public_key)
    except ValueError as e:
        raise CryptoError(ErrorCode.E108_KEY_DERIVATION_FAILED, f"ECDH failed: {e}") from e

    digest = hashes.Hash(hashes.SHA256())
    digest.update(shared_secret)
    return SharedKey(digest.finalize())


def encrypt(key: SharedKey, plaintext: str) -> str:
    """
    Encrypt a payload with AES-256-GCM.

    A fresh 96-bit nonce is generated per call. The output is
    base64(nonce || ciphertext || tag): single-line ASCII that survives
    text-based transports unchanged.
    """
    try:
        aesgcm = AESGCM(key.material)
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
    except (AttributeError, TypeError, ValueError) as e:
        raise CryptoError(ErrorCode.E101_ENCRYPTION_FAILED, f"Encryption failed: {e}") from e

    return base64.b64encode(nonce + ciphertext).decode("ascii")


def decrypt(key: SharedKey, ciphertext_text: str) -> str:
    """
    Decrypt a payload produced by encrypt().

    Raises DecryptionError if the blob is malformed, the tag does not
    verify (wrong key or tampering) or the plaintext is not UTF-8.
    """
    try:
        blob = base64.b64decode(ciphertext_text, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionError(message="Ciphertext is not valid base64") from e

    if len(blob) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionError(message="Ciphertext is truncated", details={"length": len(blob)})

    nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        plaintext = AESGCM(key.material).decrypt(nonce, ciphertext, None)
        return plaintext.decode("utf-8")
    except InvalidTag as e:
        raise DecryptionError(message="Authentication tag mismatch") from e
    except UnicodeDecodeError as e:
        raise DecryptionError(message="Plaintext is not valid UTF-8") from e


def generate_nonce() -> str:
    """Generate a single-use challenge nonce."""
    return secrets.token_hex(CHALLENGE_NONCE_BYTES)


def _derive_keystore_key(password: str, salt: bytes) -> bytes:
    """Stretch a keystore password with Argon2id."""
    return hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=ARGON2_TIME_COST,
        memory_cost=ARGON2_MEMORY_COST,
        parallelism=ARGON2_PARALLELISM,
        hash_len=SHARED_KEY_SIZE,
        type=Type.ID,
    )


def encrypt_keystore(data: Dict[str, Any], password: str) -> Dict[str, str]:
    """
    Encrypt identity material with a password using AES-256-GCM.

    The key is derived with Argon2id over a unique 16-byte salt, and a
    unique 12-byte nonce is used per encryption.
    """
    salt = os.urandom(SALT_SIZE)
    key = _derive_keystore_key(password, salt)

    nonce = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(key).encrypt(nonce, json.dumps(data).encode("utf-8"), None)

    return {
        "salt": base64.b64encode(salt).decode("utf-8"),
        "nonce": base64.b64encode(nonce).decode("utf-8"),
        "ciphertext": base64.b64encode(ciphertext).decode("utf-8"),
        "version": KEYSTORE_VERSION,
    }


def decrypt_keystore(encrypted_data: Dict[str, str], password: str) -> Dict[str, Any]:
    """
    Decrypt identity material with a password.

    Raises DecryptionError if:
    - Password is incorrect
    - Data is corrupted or incomplete
    - Authentication tag verification fails
    """
    try:
        salt = base64.b64decode(encrypted_data["salt"])
        nonce = base64.b64decode(encrypted_data["nonce"])
        ciphertext = base64.b64decode(encrypted_data["ciphertext"])
    except (KeyError, TypeError, binascii.Error) as e:
        raise DecryptionError(message=f"Keystore data is incomplete: {e}") from e

    try:
        key = _derive_keystore_key(password, salt)
    except HashingError as e:
        raise DecryptionError(message=f"Keystore salt is unusable: {e}") from e

    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
        return json.loads(plaintext.decode("utf-8"))
    except (InvalidTag, ValueError) as e:
        raise DecryptionError(
            message="Failed to decrypt keystore. Incorrect password or corrupted file."
        ) from e
