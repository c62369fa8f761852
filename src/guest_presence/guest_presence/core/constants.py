"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Asia/Tokyo, the facility's only operating timezone (no DST).
DEFAULT_UTC_OFFSET_MINUTES = 9 * 60
DEFAULT_SLOT_WIDTH_MINUTES = 30

DEFAULT_SEQUENCE_WIDTH = 3
DEFAULT_ALLOCATION_ATTEMPTS = 5

DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100

GUEST_NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 100
MENTOR_NOTE_MAX_LENGTH = 500

PUBLIC_SEARCH_LIMIT = 10
EXPORT_KEYWORD_MAX_LENGTH = 100
