import os

DB_CONFIG = {
    "path": ":memory:",
}

API_CONFIG = {
    "base_url": "http://api.test",
    "timeout": 5.0,
    "cache_ttl_seconds": 60.0,
    "max_concurrent": 5,
    "settings_path": None,
    "reachability_url": None,
}

RETRY_CONFIG = {
    "initial_delay_ms": 1000,
    "max_delay_ms": 30000,
    "max_attempts": 6,
}

SYNC_INTERVAL_SECONDS = 300.0

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

DEBUG = False
TESTING = True

AUTO_INIT_DB = True
