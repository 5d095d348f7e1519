import os
import logging

from digivote import create_app
from digivote.api import ApiError
from digivote.config import config

app = create_app()
logger = logging.getLogger("digivote")

# -------------------------
# Security: secret checks (only enforce in non-debug)
# -------------------------

def _require_secrets_in_production():
    if app.debug:
        return
    missing = []
    if not os.environ.get("SECRET_KEY") or os.environ.get("SECRET_KEY") == "dev-secret-key-change-me":
        missing.append("SECRET_KEY")
    if not os.environ.get("DIGIVOTE_API_URL"):
        logger.warning("DIGIVOTE_API_URL not set. Using %s.", config.API_URL)
    if missing:
        raise RuntimeError(f"Missing/unsafe secrets in production: {', '.join(missing)}")


def _check_api():
    """Hit the backend health endpoint once with a throwaway client."""
    from digivote.api import ApiClient
    from digivote.session_store import TokenStore

    client = ApiClient(config.API_URL, timeout=10, tokens=TokenStore({}))
    try:
        client.health()
    except ApiError as e:
        logger.error("API connectivity check failed (%s): %s", config.API_URL, e)
        return False
    return True

# -------------------------
# Run
# -------------------------

if __name__ == '__main__':
    app.debug = config.DEBUG
    try:
        _require_secrets_in_production()
    except RuntimeError as e:
        logger.error("Startup secret check failed: %s", e)
        raise

    if config.SECRET_KEY == "dev-secret-key-change-me":
        logger.warning("Using default SECRET_KEY. Set SECRET_KEY env var for production.")

    if not _check_api() and not app.debug:
        raise SystemExit(1)

    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
