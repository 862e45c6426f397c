import os
import string

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Room codes are read aloud and typed by hand, keep them short
ROOM_CODE_LENGTH = int(os.getenv("ROOM_CODE_LENGTH", 6))
ROOM_CODE_ALPHABET = os.getenv("ROOM_CODE_ALPHABET", string.ascii_uppercase + string.digits).upper()

if ROOM_CODE_LENGTH < 4:
    raise ValueError(f"ROOM_CODE_LENGTH must be at least 4, got {ROOM_CODE_LENGTH}")
if len(set(ROOM_CODE_ALPHABET)) < 2:
    raise ValueError(f"ROOM_CODE_ALPHABET needs at least 2 distinct characters, got {ROOM_CODE_ALPHABET!r}")

STATIC_DIR = os.getenv("STATIC_DIR", "public")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
