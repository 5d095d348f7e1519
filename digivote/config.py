import os


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
    DEBUG = _env_bool("FLASK_DEBUG", "0")
    TESTING = False

    # REST backend
    API_URL = (os.getenv("DIGIVOTE_API_URL", "") or "").strip() or "http://localhost:5001"
    API_TIMEOUT = float(os.getenv("DIGIVOTE_API_TIMEOUT", "60"))  # seconds, covers photo uploads

    # Listing behaviour
    PAGE_SIZE = int(os.getenv("PAGE_SIZE", "10"))
    POLL_INTERVAL_SECONDS = int(os.getenv("POLL_INTERVAL_SECONDS", "30"))
    SEARCH_DEBOUNCE_MS = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))

    # Uploaded photos / documents are forwarded as data URLs
    MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES * 3

    # In-progress voting flows kept in memory
    FLOW_STORE_SIZE = int(os.getenv("FLOW_STORE_SIZE", "500"))
    FLOW_TTL_SECONDS = int(os.getenv("FLOW_TTL_SECONDS", "900"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


config = Config()
