import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Durable store
STORE_BACKEND = os.getenv("STORE_BACKEND", "file")  # "file" or "redis"
DATA_FILE = os.getenv("DATA_FILE", os.path.join(BASE_DIR, "valve-data.json"))

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

FRONTEND_DIR = os.getenv("FRONTEND_DIR", None)
FRONTEND_DIR_CANDIDATES = [
    os.path.join(BASE_DIR, "..", "frontend"),
    os.path.join(os.getcwd(), "frontend"),
    os.path.join(BASE_DIR, "frontend"),
]

# Room codes: prefix + 4 chars, no 0/O or 1/I
ROOM_CODE_PREFIX = "VALVE-"
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 4
ROOM_CODE_MAX_ATTEMPTS = 20

# Timers (seconds)
FLUSH_INTERVAL_SECONDS = 10
HEARTBEAT_INTERVAL_SECONDS = 30
RETENTION_SWEEP_INTERVAL_SECONDS = 3600

ROOM_TTL_SECONDS = 48 * 3600
