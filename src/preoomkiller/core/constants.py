"""
constants.py
- Project-wide constants shared across logic and runner modules.
- Includes the opt-in label, the threshold annotation and tuned defaults.
"""

# --- Pod Opt-in ---
DEFAULT_LABEL_SELECTOR = "preoomkiller-enabled=true"
DEFAULT_THRESHOLD_ANNOTATION = "preoomkiller.alpha.k8s.zapier.com/memory-threshold"

# --- Metrics API ---
METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"
METRICS_PLURAL = "pods"

# --- Timing Defaults ---
DEFAULT_INTERVAL_SECONDS = 60
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
STALE_AFTER_INTERVALS = 3  # /healthz reports stale after this many missed cycles

# --- Status API ---
DEFAULT_API_PORT = 6060

# --- Startup Probe ---
STARTUP_PROBE_ATTEMPTS = 5
