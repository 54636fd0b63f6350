"""
sharedmeta - Global Constants and Configuration Values

This module defines all constants used throughout the sharedmeta client.
Protocol parameters, cryptographic sizes and configuration defaults are
centralized here.

Version: 1.0.0
"""

# Version Information
VERSION = "1.0.0"
APP_NAME = "sharedmeta"

# Relay API
DEFAULT_API_URL = "http://127.0.0.1:8080/metadata/share/"
REQUEST_TIMEOUT = 30  # seconds
USER_AGENT = f"{APP_NAME}/{VERSION}"
BEARER_PREFIX = "Bearer "

# Identity Constants
PRIVATE_KEY_SIZE = 32  # bytes
PUBLIC_KEY_SIZE = 33  # compressed SEC1 point
ADDRESS_SIZE = 20  # bytes of the SHA-256 digest kept for addresses
SEED_MIN_SIZE = 16  # bytes
SEED_DERIVATION_INFO = b"sharedmeta-identity-key-v1"
SIGNED_MESSAGE_PREFIX = b"Shared Metadata Signed Message:\n"

# Cryptography Constants
SHARED_KEY_SIZE = 32  # 256 bits for AES-256-GCM
NONCE_SIZE = 12  # 96 bits for AES-GCM
TAG_SIZE = 16  # 128-bit GCM tag
SALT_SIZE = 16  # 128 bits
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536  # 64 MB
ARGON2_PARALLELISM = 1
KEYSTORE_VERSION = "1.0"

# Session Constants
RELAY_TOKEN_LIFETIME = 3600  # 1 hour in seconds
RELAY_TOKEN_ALGORITHM = "HS256"
CHALLENGE_NONCE_BYTES = 16

# Message Constants
MESSAGE_TYPE_DEFAULT = 0

# File Paths
DEFAULT_DATA_DIR = "~/.sharedmeta"
CONFIG_FILENAME = "config.toml"
KEYSTORE_FILENAME = "identity.json"

# Logging Configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5
