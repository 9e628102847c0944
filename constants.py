import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))
RELOAD = os.getenv("RELOAD", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)
SOCKETIO_LOGGING = os.getenv("SOCKETIO_LOGGING", "false").lower() == "true"

PUBLIC_DIR = os.getenv("PUBLIC_DIR", os.path.join(BASE_DIR, "public"))
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(PUBLIC_DIR, "uploads"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", 100 * 1024 * 1024))  # 100MB

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

DEFAULT_USERNAME_PREFIX = "User-"
