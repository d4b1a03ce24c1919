"""Constants for simple-vc."""

# Project marker directory
SVC_DIR = ".svc"

# Files inside SVC_DIR
DB_FILE = "svc.db"
CONFIG_FILE = "config.yaml"

# Ignore rules live at the project root
IGNORE_FILE = ".svcignore"

# Rules written by `svc init` when no ignore file exists
DEFAULT_IGNORE_RULES = ["node_modules/", ".git/", "*.log", "*.tmp", "*.db"]

# Rule-file comment prefixes
COMMENT_PREFIXES = ("#", "//")

# Quiet window for coalescing repeated "modified" events (seconds)
DEFAULT_DEBOUNCE_SECONDS = 0.3

# Text encoding used for snapshot capture and restore
DEFAULT_ENCODING = "utf-8"

# Random bytes in a collaboration secret (hex-encoded -> 32 chars)
SECRET_KEY_BYTES = 16

# SQLite busy timeout (seconds)
DB_TIMEOUT = 30

# Version
SVC_VERSION = "0.1.0"
