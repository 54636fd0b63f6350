"""
sharedmeta - Identity keystore.

Persists an identity's key material in a password-encrypted JSON file on
behalf of callers (the protocol core itself stores nothing).
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from . import crypto
from .errors import DecryptionError, ErrorCode, KeyFormatError, KeystoreError
from .identity import Identity

logger = logging.getLogger(__name__)


class IdentityStore:
    """Manages one identity in an encrypted keystore file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        """Check if the keystore file exists."""
        return self.path.exists()

    def create(self, password: str, seed: Optional[bytes] = None) -> Identity:
        """
        Create and save a new identity.

        A seed gives a deterministic identity; without one a random
        key-pair is generated.

        Raises:
            KeystoreError: If a keystore already exists or cannot be written
        """
        if self.exists():
            raise KeystoreError(
                ErrorCode.E502_KEYSTORE_ALREADY_EXISTS,
                f"Keystore already exists: {self.path}",
            )

        identity = Identity.from_seed(seed) if seed is not None else Identity.generate()
        self.save(identity, password)
        return identity

    def save(self, identity: Identity, password: str) -> None:
        """Save identity to the encrypted file, replacing it atomically."""
        encrypted_data = crypto.encrypt_keystore(identity.to_dict(), password)
        temp_file = self.path.with_name(self.path.name + ".tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(encrypted_data, f, indent=2)
            os.replace(temp_file, self.path)
        except OSError as e:
            logger.error(f"Failed to save keystore: {e}")
            temp_file.unlink(missing_ok=True)
            raise KeystoreError(
                ErrorCode.E504_KEYSTORE_SAVE_FAILED, f"Failed to save keystore: {e}"
            ) from e

        logger.info(f"Identity saved: {identity.address}")

    def load(self, password: str) -> Identity:
        """
        Load identity from the encrypted file.

        Raises:
            KeystoreError: If the file is missing, corrupted or the password is wrong
        """
        if not self.exists():
            raise KeystoreError(
                ErrorCode.E501_KEYSTORE_NOT_FOUND, f"Keystore does not exist: {self.path}"
            )

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                encrypted_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Corrupted keystore file: {e}")
            raise KeystoreError(
                ErrorCode.E503_KEYSTORE_LOAD_FAILED, f"Cannot read keystore: {e}"
            ) from e

        try:
            identity = Identity.from_dict(crypto.decrypt_keystore(encrypted_data, password))
        except DecryptionError as e:
            logger.warning("Failed to decrypt keystore (incorrect password?)")
            raise KeystoreError(
                ErrorCode.E505_BAD_PASSWORD, "Incorrect password or corrupted keystore"
            ) from e
        except KeyFormatError as e:
            raise KeystoreError(
                ErrorCode.E503_KEYSTORE_LOAD_FAILED, f"Keystore holds an invalid identity: {e}"
            ) from e

        logger.info(f"Identity loaded: {identity.address}")
        return identity

    def delete(self, password: str) -> bool:
        """
        Delete the keystore after verifying the password.

        Returns:
            True once deleted

        Raises:
            KeystoreError: If the file is missing or the password is wrong
        """
        identity = self.load(password)
        try:
            self.path.unlink()
        except OSError as e:
            raise KeystoreError(
                ErrorCode.E504_KEYSTORE_SAVE_FAILED, f"Failed to delete keystore: {e}"
            ) from e

        logger.info(f"Identity deleted: {identity.address}")
        return True
