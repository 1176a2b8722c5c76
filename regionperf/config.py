"""Constants and configuration for regionperf."""

# Latency color thresholds (milliseconds)
FAST_THRESHOLD_MS = 50.0     # Green: <= 50ms
MEDIUM_THRESHOLD_MS = 150.0  # Yellow: <= 150ms
# Red: > 150ms

# Jitter is judged on a tighter scale than raw latency
JITTER_THRESHOLDS = {"fast": 5.0, "medium": 20.0}

# Default measurement settings
DEFAULT_INTERVAL_SECONDS = 5.0
DEFAULT_DURATION_MINUTES = 1.0
DEFAULT_TIMEOUT = 10.0
DEFAULT_PROBE_ATTEMPTS = 3

# Rounds executed and discarded before the timed window opens
WARMUP_ROUNDS = 2

# Startup probe backoff (seconds)
PROBE_BACKOFF_BASE = 1.0
PROBE_BACKOFF_FACTOR = 2.0
PROBE_BACKOFF_MAX = 8.0

# Oldest Python the tool supports
MIN_PYTHON = (3, 10)

# Blob each region serves for probing
BLOB_URL_TEMPLATE = "https://{account}.blob.core.windows.net/public/latency-test.json"

# User agent for HTTP requests
USER_AGENT = "regionperf/0.1.0"

# Sent with every probe so intermediaries do not answer from cache
PROBE_HEADERS = {
    "Cache-Control": "no-cache",
    "Accept": "*/*",
    "User-Agent": USER_AGENT,
}

# Environment variable prefix for every CLI option
ENV_PREFIX = "REGIONPERF"

# Report column headers
REPORT_COLUMNS = [
    "Region",
    "MinimumLatencyMilliseconds",
    "MaximumLatencyMilliseconds",
    "AverageLatencyMilliseconds",
    "JitterMilliseconds",
]
