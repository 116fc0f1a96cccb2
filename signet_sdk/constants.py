"""
signet_sdk.constants
--------------------
Protocol constants and the environment variables the SDK reads.
"""

# Key/signature text form: urlsafe base64 (no padding) + this suffix
KEY_TEXT_SUFFIX = "="

ED25519_PUBLIC_KEY_LEN = 32
ED25519_SEED_LEN = 32
ED25519_PRIVATE_KEY_LEN = 64   # libsodium layout: seed || public key
ED25519_SIGNATURE_LEN = 64

# Registry API paths
PATH_ENTITY = "/entity"
PATH_ENTITY_CREATE = "/entity/"
PATH_ENTITY_UPDATE = "/entity/update"
PATH_ENTITY_REKEY = "/entity/rekey"

HEADER_ORG_KEY = "X-Org-Key"
HEADER_ORG_SIGN = "X-Org-Sign"

XID_SEPARATOR = ":"
CHANNEL_SEPARATOR = "#"

# Key order used by canonical_json(); unknown keys follow, sorted
CANONICAL_FIELD_ORDER = (
    "data", "verify",
    "guid", "xids", "channels",
    "nstype", "ns", "name",
    "chtype", "version", "endpoint",
    "verify_key", "sign_time", "prev_sign",
    "payload", "sign",
    "signed_payload", "old_sign",
)

# Environment
ENV_TRANSPORT = "SIGNET_TRANSPORT"
ENV_API_URL = "SIGNET_API_URL"
ENV_HTTP_TIMEOUT = "SIGNET_HTTP_TIMEOUT"
ENV_ORG_PUBLIC_KEY = "SIGNET_ORG_PUBLIC_KEY"
ENV_ORG_PRIVATE_KEY = "SIGNET_ORG_PRIVATE_KEY"
ENV_LOG_LEVEL = "SIGNET_LOG_LEVEL"
ENV_LOG_FILE = "SIGNET_LOG_FILE"

DEFAULT_TRANSPORT = "http"
DEFAULT_API_URL = "http://localhost:1337"
DEFAULT_HTTP_TIMEOUT = 10.0
