from __future__ import annotations
import os

RDEDIT_HOME = os.environ.get("RDEDIT_HOME", "~/.rdedit")
TEMP_DIR = os.environ.get("RDEDIT_TEMP_DIR") or None
HTTP_TIMEOUT = float(os.environ.get("RDEDIT_HTTP_TIMEOUT", "30"))
WATCH_INTERVAL = float(os.environ.get("RDEDIT_WATCH_INTERVAL", "1.0"))
LOCK_TIMEOUT = float(os.environ.get("RDEDIT_LOCK_TIMEOUT", "10"))

INFO_API_VERSION = "40"
IMPORT_API_VERSION = "53"

CONNECTION_FILE = "connection.json"
SESSIONS_FILE = "sessions.json"
