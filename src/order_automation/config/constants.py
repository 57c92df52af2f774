"""
Centralized application constants.

This file acts as the single point of truth for business logic constants
shared across the automation engine, the repositories and the API server.
"""

# ==============================================================================
# EMAIL TYPES AND SEND STATUSES
# ==============================================================================

EMAIL_TYPE_CUSTOMER = "customer"
EMAIL_TYPE_PRIVATE = "private"
# Kept for historical email_logs rows; the engine routes customer and
# private notifications exclusively and never emits a copy.
EMAIL_TYPE_PRIVATE_COPY = "private_copy"
EMAIL_TYPE_ADDITIONAL = "additional"

EMAIL_TYPES = [
    EMAIL_TYPE_CUSTOMER,
    EMAIL_TYPE_PRIVATE,
    EMAIL_TYPE_PRIVATE_COPY,
    EMAIL_TYPE_ADDITIONAL,
]

SEND_STATUS_PENDING = "pending"
SEND_STATUS_SENT = "sent"
SEND_STATUS_FAILED = "failed"

SEND_STATUSES = [SEND_STATUS_PENDING, SEND_STATUS_SENT, SEND_STATUS_FAILED]

# ==============================================================================
# TEMPLATE FALLBACKS
# ==============================================================================

DEFAULT_CUSTOMER_NAME = "Valued Customer"
NO_ITEMS_SUMMARY = "No items found"
UNKNOWN_CUSTOMER_NAME = "Unknown Customer"
NO_CUSTOMER_EMAIL = "No email"

# Currency formatting
CURRENCY_DECIMAL_PLACES = 2

# ==============================================================================
# REGIONAL SETTINGS
# ==============================================================================

DEFAULT_BUSINESS_TIMEZONE = "America/New_York"

DATE_FORMAT = "%m/%d/%Y"
TIME_FORMAT = "%H:%M:%S"
DATETIME_FORMAT = f"{DATE_FORMAT} {TIME_FORMAT}"

# ==============================================================================
# AUTOMATION CONFIGURATION
# ==============================================================================

# Rules evaluated in parallel per chunk
DEFAULT_RULE_CONCURRENCY = 10

# Orders processed in parallel per batch within a rule
DEFAULT_ORDER_BATCH_SIZE = 50

# Pause between chunks to avoid overwhelming the database (seconds)
DEFAULT_RULE_CHUNK_DELAY_SECONDS = 0.05
DEFAULT_ORDER_BATCH_DELAY_SECONDS = 0.1

# Scheduler interval
DEFAULT_AUTOMATION_INTERVAL_MINUTES = 60

# Errors kept on a pass result
MAX_RESULT_ERRORS = 50

# ==============================================================================
# STATUS MODEL SHEET
# ==============================================================================

STATUS_MODEL_HEADERS = [
    "Status",
    "New Status",
    "Wait Time (Business Days)",
    "Description",
    "Private Email",
    "Email Subject",
    "Email Custom Message",
    "Additional Recipients",
]

INSTANT_WAIT_TIME = "instant"
