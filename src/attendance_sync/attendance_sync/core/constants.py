"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

RETRY_INITIAL_DELAY_MS = 1000
RETRY_MAX_DELAY_MS = 30000
RETRY_MAX_ATTEMPTS = 6

DEFAULT_MINIMUM_WORKING_HOURS = 8.0

# OUT punches before this UTC hour may close the previous day's open check-in.
OVERNIGHT_CHECKOUT_CUTOFF_HOUR_UTC = 6

# Shift windows are evaluated in India Standard Time.
IST_OFFSET_MINUTES = 330

API_CACHE_TTL_SECONDS = 60
API_MAX_CONCURRENT_REQUESTS = 5
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

DEFAULT_SYNC_INTERVAL_SECONDS = 300

STALE_CHECKIN_DAYS = 3
MISSED_CHECKOUT_BUFFER_MINUTES = 120

NO_NETWORK_MESSAGE = "No network connection"

PROFILE_PROPERTIES = (
    "firstName",
    "lastName",
    "dateOfBirth",
    "employmentType",
    "designation",
    "profilePhoto",
    "shiftStartTime",
    "shiftEndTime",
    "minimumWorkingHours",
)
