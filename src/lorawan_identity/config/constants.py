"""Constants shared across the identity server."""

# Bearer token kinds
TOKEN_KIND_API_KEY = "AK"
TOKEN_KIND_ACCESS_TOKEN = "AT"
TOKEN_KIND_SESSION = "SK"

# Authorization header types
AUTH_TYPE_BEARER = "bearer"
AUTH_TYPE_CLUSTER = "clusterkey"

# Request metadata
HEADER_AUTHORIZATION = "authorization"
HEADER_TOTAL_COUNT = "x-total-count"
HEADER_REQUEST_TIMEOUT = "x-request-timeout"
HEADER_WARNING = "warning"

# Secret lengths in bytes before encoding
TOKEN_ID_BYTES = 16
TOKEN_SECRET_BYTES = 32
VALIDATION_TOKEN_BYTES = 24

# Field paths never returned to callers
RESERVED_FIELDS = frozenset({"password", "secret"})
