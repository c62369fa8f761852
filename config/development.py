import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "guest_presence"),
}

DEBUG = True

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app applies schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# Facility clock: fixed offset from UTC, no DST (540 = UTC+09:00)
FACILITY_UTC_OFFSET_MINUTES = int(os.getenv("FACILITY_UTC_OFFSET_MINUTES", "540"))
SLOT_WIDTH_MINUTES = int(os.getenv("SLOT_WIDTH_MINUTES", "30"))

DISPLAY_ID_SEQUENCE_WIDTH = int(os.getenv("DISPLAY_ID_SEQUENCE_WIDTH", "3"))
DISPLAY_ID_MAX_ATTEMPTS = int(os.getenv("DISPLAY_ID_MAX_ATTEMPTS", "5"))
