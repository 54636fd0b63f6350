"""
sharedmeta - Cryptography tests.

Tests for key agreement, payload encryption and keystore protection.
"""

import base64

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from sharedmeta import crypto
from sharedmeta.constants import NONCE_SIZE, PUBLIC_KEY_SIZE, TAG_SIZE
from sharedmeta.errors import CryptoError, DecryptionError, ErrorCode, KeyFormatError


def test_shared_key_symmetry(alice, bob):
    """Test both parties derive the same shared key."""
    alice_key = crypto.derive_shared_key(alice.private_key, bob.public_key_export)
    bob_key = crypto.derive_shared_key(bob.private_key, alice.public_key_export)

    assert alice_key == bob_key
    assert len(alice_key.material) == 32


def test_shared_key_differs_per_pair(alice, bob, carol):
    """Test each pair of identities gets its own key."""
    assert alice.shared_key_for(bob.public_key_export) != alice.shared_key_for(
        carol.public_key_export
    )


def test_shared_key_repr_is_redacted(alice, bob):
    """Test key material never appears in repr."""
    key = alice.shared_key_for(bob.public_key_export)
    assert key.material.hex() not in repr(key)
    assert "redacted" in repr(key)


def test_shared_key_wrong_size():
    """Test shared keys must be 32 bytes."""
    with pytest.raises(CryptoError):
        crypto.SharedKey(b"short")


def test_encrypt_decrypt_roundtrip(alice, bob):
    """Test payload encryption and decryption."""
    key = alice.shared_key_for(bob.public_key_export)
    ciphertext = crypto.encrypt(key, "Hello, Bob!")

    assert ciphertext != "Hello, Bob!"
    assert crypto.decrypt(bob.shared_key_for(alice.public_key_export), ciphertext) == "Hello, Bob!"


def test_encrypt_empty_and_unicode(alice, bob):
    """Test empty and non-ASCII payloads survive encryption."""
    key = alice.shared_key_for(bob.public_key_export)
    assert crypto.decrypt(key, crypto.encrypt(key, "")) == ""
    assert crypto.decrypt(key, crypto.encrypt(key, "héllo ✓")) == "héllo ✓"


def test_encrypt_output_format(alice, bob):
    """Test ciphertext is single-line base64 of nonce, ciphertext and tag."""
    key = alice.shared_key_for(bob.public_key_export)
    ciphertext = crypto.encrypt(key, "abc")

    assert "\n" not in ciphertext
    blob = base64.b64decode(ciphertext, validate=True)
    assert len(blob) == NONCE_SIZE + len(b"abc") + TAG_SIZE


def test_encrypt_uses_fresh_nonce(alice, bob):
    """Test encrypting the same payload twice gives different ciphertexts."""
    key = alice.shared_key_for(bob.public_key_export)
    assert crypto.encrypt(key, "same") != crypto.encrypt(key, "same")


def test_decrypt_with_wrong_key(alice, bob, carol):
    """Test a third party cannot decrypt."""
    ciphertext = crypto.encrypt(alice.shared_key_for(bob.public_key_export), "secret")

    with pytest.raises(DecryptionError):
        crypto.decrypt(carol.shared_key_for(alice.public_key_export), ciphertext)


def test_decrypt_tampered_ciphertext(alice, bob):
    """Test flipping a byte causes authentication failure."""
    key = alice.shared_key_for(bob.public_key_export)
    blob = bytearray(base64.b64decode(crypto.encrypt(key, "secret")))
    blob[-1] ^= 0x01

    with pytest.raises(DecryptionError):
        crypto.decrypt(key, base64.b64encode(bytes(blob)).decode("ascii"))


@pytest.mark.parametrize("ciphertext", ["not base64 at all!", "", base64.b64encode(b"short").decode()])
def test_decrypt_malformed_input(alice, bob, ciphertext):
    """Test malformed ciphertext raises DecryptionError."""
    key = alice.shared_key_for(bob.public_key_export)
    with pytest.raises(DecryptionError):
        crypto.decrypt(key, ciphertext)


def test_export_and_load_public_key(alice):
    """Test public key export is 33-byte compressed base64 and loads back."""
    assert len(base64.b64decode(alice.public_key_export)) == PUBLIC_KEY_SIZE
    loaded = crypto.load_public_key(alice.public_key_export)
    assert crypto.export_public_key(loaded) == alice.public_key_export


def test_load_uncompressed_public_key(alice):
    """Test uncompressed SEC1 points are accepted."""
    from cryptography.hazmat.primitives import serialization

    uncompressed = alice.public_key.public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )
    loaded = crypto.load_public_key(base64.b64encode(uncompressed).decode())
    assert crypto.export_public_key(loaded) == alice.public_key_export


@pytest.mark.parametrize(
    "export",
    ["", "!!!", base64.b64encode(b"\x02" + b"\x00" * 10).decode(), None],
)
def test_load_malformed_public_key(export):
    """Test malformed exports raise KeyFormatError."""
    with pytest.raises(KeyFormatError):
        crypto.load_public_key(export)


def test_derive_shared_key_malformed_remote(alice):
    """Test key agreement with a malformed remote key fails."""
    with pytest.raises(KeyFormatError):
        crypto.derive_shared_key(alice.private_key, "garbage")


def test_derive_shared_key_curve_mismatch(bob):
    """Test a local key on another curve is rejected."""
    p256_key = ec.generate_private_key(ec.SECP256R1())

    with pytest.raises(CryptoError) as exc_info:
        crypto.derive_shared_key(p256_key, bob.public_key_export)
    assert exc_info.value.code == ErrorCode.E107_CURVE_MISMATCH


def test_derive_address_format(alice):
    """Test addresses are 40 lowercase hex characters."""
    address = crypto.derive_address(crypto.encode_public_key(alice.public_key))
    assert address == alice.address
    assert len(address) == 40
    assert address == address.lower()
    int(address, 16)


def test_generate_nonce_unique():
    """Test challenge nonces do not repeat."""
    nonces = {crypto.generate_nonce() for _ in range(100)}
    assert len(nonces) == 100


def test_keystore_encryption():
    """Test password-based keystore encryption."""
    data = {"private": "secret", "address": "a" * 40}
    encrypted = crypto.encrypt_keystore(data, "test_password")

    assert {"salt", "nonce", "ciphertext", "version"} <= set(encrypted)
    assert crypto.decrypt_keystore(encrypted, "test_password") == data


def test_keystore_wrong_password():
    """Test decryption with the wrong password fails."""
    encrypted = crypto.encrypt_keystore({"private": "secret"}, "correct_password")

    with pytest.raises(DecryptionError):
        crypto.decrypt_keystore(encrypted, "wrong_password")


def test_keystore_incomplete_data():
    """Test missing keystore fields are reported as decryption failures."""
    with pytest.raises(DecryptionError):
        crypto.decrypt_keystore({"salt": "AAAA"}, "password")


def test_keystore_short_salt():
    """Test an unusable salt is reported as a decryption failure."""
    encrypted = crypto.encrypt_keystore({"private": "secret"}, "password")
    encrypted["salt"] = base64.b64encode(b"ab").decode("ascii")

    with pytest.raises(DecryptionError):
        crypto.decrypt_keystore(encrypted, "password")
