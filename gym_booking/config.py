import logging
import os
from typing import List

logger = logging.getLogger(__name__)

# --- Booking layout ---
BOOKINGS_PATH = "bookings"
SLOTS_PER_DAY = 8
# Four parallel stations share each hour.
TIME_RANGES: List[str] = [
    "18:30 - 19:30", "18:30 - 19:30", "18:30 - 19:30", "18:30 - 19:30",
    "19:30 - 20:30", "19:30 - 20:30", "19:30 - 20:30", "19:30 - 20:30",
]

# --- File Paths ---
DATA_DIR = os.environ.get("GYM_BOOKING_DATA_DIR", "data")
STORE_FILE = os.path.join(DATA_DIR, "store.json")
FILE_POLL_INTERVAL = float(os.environ.get("GYM_BOOKING_POLL_INTERVAL", "1"))

# --- Firebase Realtime Database ---
FIREBASE_DATABASE_URL = os.environ.get("FIREBASE_DATABASE_URL")
# Service account key file; Application Default Credentials when unset.
FIREBASE_CREDENTIALS = os.environ.get("FIREBASE_CREDENTIALS")
REQUEST_TIMEOUT = float(os.environ.get("GYM_BOOKING_REQUEST_TIMEOUT", "10"))

if not FIREBASE_DATABASE_URL:
    logger.warning("Firebase configuration incomplete. Bookings will be kept in %s.", STORE_FILE)
