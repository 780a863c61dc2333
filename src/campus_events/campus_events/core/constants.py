"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

ATTENDANCE_WINDOW_MINUTES = 30
DEFAULT_QR_CODE_TTL_MINUTES = 60
DEFAULT_LIST_LIMIT = 100

PASSWORD_MIN_LENGTH = 8
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

CLUB_NAME_MIN_LENGTH = 2
CLUB_NAME_MAX_LENGTH = 100
CLUB_DESCRIPTION_MAX_LENGTH = 500

EVENT_TITLE_MIN_LENGTH = 3
EVENT_TITLE_MAX_LENGTH = 100
EVENT_DESCRIPTION_MIN_LENGTH = 10
EVENT_DESCRIPTION_MAX_LENGTH = 2000
EVENT_LOCATION_MAX_LENGTH = 200
EVENT_VENUE_MAX_LENGTH = 100

ATTENDANCE_NOTES_MAX_LENGTH = 500
FEEDBACK_COMMENT_MAX_LENGTH = 1000
RATING_MIN = 1
RATING_MAX = 5
