"""Constants for storyboard graph operations."""

# Identity
ID_LENGTH = 12
NODE_ID_PREFIX = "node_"
EDGE_ID_PREFIX = "edge_"
DEFAULT_EDGE_LABEL = "connects to"

# Autosave
DEBOUNCE_SECONDS = 2.0    # Quiescence window before a save fires
FLUSH_TIMEOUT_SECONDS = 5.0

# Crypto
CIPHER_VERSION = 1
KEY_LENGTH = 32           # AES-256
NONCE_LENGTH = 12         # GCM standard nonce
KDF_ITERATIONS = 200_000

# Blob store service
TOKEN_LENGTH = 32
TOKEN_TTL_SECONDS = 24 * 60 * 60  # 24 hours
SAVE_INTERVAL_SECONDS = 30
MAX_RECENT_BACKUPS = 3
BACKUP_INTERVAL_SECONDS = 3600  # Minimum 1 hour between backups
