# --- Agent Loop ---

MAX_ITERATIONS = 10
LLM_RETRIES = 3
LLM_RETRY_BASE_DELAY = 1.0  # seconds, doubled per attempt, uncapped

AUDIT_PREVIEW_CHARS = 200
TOOL_ERROR_PREFIXES = ("Error", "Permission denied", "Tool not found")


# --- Provider Reliability ---

PROVIDER_MAX_RETRIES = 2
PROVIDER_BACKOFF_MS = 250
PROVIDER_MIN_BACKOFF_MS = 100
PROVIDER_MAX_BACKOFF_MS = 2000

TRANSIENT_ERROR_MARKERS = (
    "429",
    "rate limit",
    "too many requests",
    "timeout",
    "temporar",
    "unavailable",
    "503",
)


# --- Context ---

MAX_HISTORY_MESSAGES = 20
CONTEXT_FILES = ("AGENTS.md", "SOUL.md", "USER.md", "TOOLS.md", "IDENTITY.md")


# --- Session ---

SUMMARIZE_THRESHOLD = 20  # messages in history before a summary is requested
SUMMARIZE_COOLDOWN = 60.0  # seconds between summaries of the same session
SUMMARY_KEEP_MESSAGES = 10
SUMMARY_TEMPERATURE = 0.3
SUMMARY_MAX_TOKENS = 500


# --- Sandbox ---

EXEC_TIMEOUT = 30  # seconds
MAX_OUTPUT_BYTES = 64 * 1024
WEB_FETCH_TIMEOUT = 20.0


# --- Bus ---

BUS_CAPACITY = 100


# --- Display Truncation ---

DEFAULT_READ_LINES = 500
NAME_MAX_CHARS = 80
