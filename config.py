import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./points.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    API_RELOAD = bool(data.get("API_RELOAD", False))
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    AUTO_CREATE_TABLES = bool(data.get("AUTO_CREATE_TABLES", True))

    # Transfer Processing
    TRANSFER_MAX_ATTEMPTS = data.get("TRANSFER_MAX_ATTEMPTS", 3)  # Balance move attempts on concurrent appends
    DEFAULT_PAGE_SIZE = data.get("DEFAULT_PAGE_SIZE", 20)

    # Ledger Reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
    PENDING_TRANSFER_TIMEOUT_SECONDS = data.get("PENDING_TRANSFER_TIMEOUT_SECONDS", 300)
