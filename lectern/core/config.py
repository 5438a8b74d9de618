# lectern/core/config.py
import os

from dotenv import load_dotenv

# Load .env
load_dotenv()

# ---- STORAGE ----
# Cache root; storage falls back to ~/.bible-cli when unset
DATA_DIR = os.getenv("LECTERN_DATA_DIR")

# ---- SOURCE ----
DEFAULT_SOURCE_URL = os.getenv(
    "LECTERN_SOURCE_URL",
    "https://raw.githubusercontent.com/thiagobodruk/bible/master/json/en_kjv.json",
)
HTTP_TIMEOUT = int(os.getenv("LECTERN_HTTP_TIMEOUT", "60"))
HTTP_RETRIES = int(os.getenv("LECTERN_HTTP_RETRIES", "3"))

# ---- LOGGING ----
LOG_LEVEL = os.getenv("LECTERN_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# ---- SERVER ----
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "5055"))
