# =============================================================================
# Conversion Service
# =============================================================================

CONFIDENCE_THRESHOLD = 0.7  # Minimum confidence for image text recognition
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png")  # Routed to synchronous /text

# Options sent with every async document job
PDF_CONVERSION_OPTIONS = {
    "math_inline_delimiters": ["$", "$"],
    "math_display_delimiters": ["$$", "$$"],
    "enable_tables_fallback": True,
    "conversion_formats": ["mmd"],
}

# Formats and flags requested from the image recognition endpoint
TEXT_RECOGNITION_OPTIONS = {
    "formats": ["text", "data", "latex_styled", "html"],
    "math_inline_delimiters": ["$", "$"],
    "math_display_delimiters": ["$$", "$$"],
    "rm_spaces": True,
    "include_line_breaks": True,
    "include_asciimath": True,
    "numbers_default_to_math": True,
    "enable_spell_check": True,
    "enable_math_ocr": True,
    "enable_tables_fallback": True,
}


# =============================================================================
# External Service Timeouts (seconds)
# =============================================================================

CONVERTER_CLIENT_TIMEOUT_SECONDS = 60.0  # HTTP client timeout for converter requests
POLL_INTERVAL_SECONDS = 10.0  # Delay between job status checks
POLL_MAX_ATTEMPTS = 30  # 30 x 10s = ~5 minutes
LLM_REQUEST_TIMEOUT_SECONDS = 60.0
STORAGE_FETCH_TIMEOUT_SECONDS = 30.0
RESOLVE_TIMEOUT_SECONDS = 30.0  # Per-document resolution budget


# =============================================================================
# Retry Configuration
# =============================================================================

MAX_RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY_SECONDS = 2.0  # Linear: base * (attempt - 1)


# =============================================================================
# Storage Layout
# =============================================================================

USERS_PREFIX = "users"
MARKUP_DIR = "mmd"
UPLOADS_PREFIX = "uploads"
MARKUP_SUFFIX = ".mmd"
PDF_SUFFIX = ".pdf"
MARKUP_CONTENT_TYPE = "text/markdown"
CREATED_AT_METADATA = "created-at"  # Stored as x-amz-meta-created-at

DOCUMENTS_STORAGE_KEY = "user_documents"  # Local mirror slot


# =============================================================================
# Validation Limits
# =============================================================================

MAX_UPLOAD_SIZE_MB = 5
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
ALLOWED_UPLOAD_CONTENT_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
)
OWNER_ID_MAX_LENGTH = 128
FILE_NAME_MAX_LENGTH = 255

ERROR_BODY_MAX_CHARS = 2000  # Truncate remote error bodies in diagnostics
