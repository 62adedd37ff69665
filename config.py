import os

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Paths
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")
STORAGE_FILE = os.getenv("STORAGE_FILE", os.path.join(BASE_DIR, "client_storage.json"))
DOWNLOAD_DIR = os.getenv("DOWNLOAD_DIR", os.path.join(BASE_DIR, "downloads"))

# Local server
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))  # 1 hour
BROWSER_ID_TTL = int(os.getenv("BROWSER_ID_TTL", str(365 * 24 * 3600)))  # client storage lifetime

# CertifyMe backend
API_URL = os.getenv("CERTIFYME_API_URL", "http://localhost:5000").rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15.0"))

# Attempt rules
SECONDS_PER_QUESTION = int(os.getenv("SECONDS_PER_QUESTION", "120"))
TIMER_WARNING_SECONDS = int(os.getenv("TIMER_WARNING_SECONDS", "60"))
PASS_PERCENT = float(os.getenv("PASS_PERCENT", "60"))
DEFAULT_LANG = "ua"
