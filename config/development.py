import os

DB_CONFIG = {
    "path": os.getenv("DB_PATH", "attendance_dev.sqlite3"),
}

API_CONFIG = {
    "base_url": os.getenv("API_BASE_URL", "http://localhost:8080"),
    "timeout": float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
    "cache_ttl_seconds": float(os.getenv("API_CACHE_TTL_SECONDS", "60")),
    "max_concurrent": int(os.getenv("API_MAX_CONCURRENT_REQUESTS", "5")),
    # No server settings API yet; settings sync stays local when unset.
    "settings_path": os.getenv("SETTINGS_API_PATH") or None,
    "reachability_url": os.getenv("REACHABILITY_URL") or None,
}

RETRY_CONFIG = {
    "initial_delay_ms": int(os.getenv("RETRY_INITIAL_DELAY_MS", "1000")),
    "max_delay_ms": int(os.getenv("RETRY_MAX_DELAY_MS", "30000")),
    "max_attempts": int(os.getenv("RETRY_MAX_ATTEMPTS", "6")),
}

SYNC_INTERVAL_SECONDS = float(os.getenv("SYNC_INTERVAL_SECONDS", "300"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

DEBUG = True

# If enabled, the local store schema is applied on startup (idempotent, additive)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
