"""
Constants Module

Defines constants used across the notion-relay project.
"""

# =============================================================================
# Notion API Constants
# =============================================================================

NOTION_API_BASE_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

# Max page size accepted by the database query endpoint
NOTION_QUERY_PAGE_SIZE = 100

# Notion allows an average of 3 requests per second per integration
API_RATE_LIMIT_INTERVAL = 0.34

API_MAX_RETRIES = 3
API_RETRY_BASE_DELAY = 1.0
API_RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)
API_TIMEOUT = 30


# =============================================================================
# Store Schema Defaults
# =============================================================================

DEFAULT_KEY_PROPERTY = "Part Number"
DEFAULT_QUANTITY_PROPERTY = "Quantity"
DEFAULT_REQUEST_DATE_PROPERTY = "Request Date"
DEFAULT_SYNC_FLAG_PROPERTY = "Sync Flag"


# =============================================================================
# Sent-Record Cache Constants
# =============================================================================

SENT_CACHE_KEY = "sent_cache"
SENT_CACHE_TTL_HOURS = 24

# Serialized tables at or above this size go to the durable store
SENT_CACHE_SIZE_THRESHOLD = 90000

# The volatile tier expires on its own, independently of the logical TTL
VOLATILE_CACHE_EXPIRY = 6 * 3600


# =============================================================================
# Delivery Constants
# =============================================================================

DELIVERY_MAX_ATTEMPTS = 3
DELIVERY_BACKOFF_BASE = 2.0
DELIVERY_TIMEOUT = 60

CHAT_SEND_PATH = "api/integrations/send/{channel_id}"
DEFAULT_MESSAGE_TEXT = "Inspection report"
DEFAULT_IDEMPOTENCY_PREFIX = "report"
IDEMPOTENCY_DIGEST_CHARS = 32

OUTBOX_EXTENSIONS = {".html", ".htm"}
OUTBOX_TRASH_DIR = ".trash"
DEFAULT_SEND_INTERVAL = 2.0


# =============================================================================
# Run Lock Constants
# =============================================================================

RUN_LOCK_FILE = "run.lock"
RUN_LOCK_TIMEOUT = 3600.0
