"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CHECKIN_GRACE_MINUTES = 15
DEFAULT_CHECKIN_LATE_MINUTES = 30
ADMISSION_RETRIES = 3
MAX_NOTE_LENGTH = 500
MAX_NAME_LENGTH = 200
DAY_SLOT_LABEL_FORMAT = "Day {day} - {slot}"
