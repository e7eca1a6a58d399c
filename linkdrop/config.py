import logging
import os
import sys
from dataclasses import dataclass

# ------------------
# Defaults
# ------------------
DEFAULT_API_URL = "http://localhost:8080"
REQUEST_TIMEOUT = 60  # seconds, large files take a while
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
DOWNLOAD_DELAY = 1.0  # seconds before the download starts

DEFAULT_PORT = 8080
DEFAULT_EXPIRY_DAYS = 7
DEFAULT_RATE_LIMIT = 100  # requests per minute per IP
CLEANUP_INTERVAL = 24 * 60 * 60


def _env_int(name, default):
    value = os.getenv(name, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class ClientSettings:
    api_url: str = DEFAULT_API_URL
    timeout: float = REQUEST_TIMEOUT
    max_file_size: int = MAX_FILE_SIZE

    @classmethod
    def from_env(cls) -> "ClientSettings":
        return cls(api_url=os.getenv("API_URL") or DEFAULT_API_URL)


@dataclass(frozen=True)
class ServerSettings:
    upload_folder: str = "uploads"
    base_url: str = ""  # empty means "use the request host"
    expiry_days: int = DEFAULT_EXPIRY_DAYS
    admin_token: str = "admin-secret-token"
    rate_limit: int = DEFAULT_RATE_LIMIT
    max_file_size: int = MAX_FILE_SIZE
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls) -> "ServerSettings":
        return cls(
            upload_folder=os.getenv("UPLOAD_FOLDER", "uploads"),
            base_url=os.getenv("BASE_URL", "").rstrip("/"),
            expiry_days=_env_int("FILE_EXPIRY_DAYS", DEFAULT_EXPIRY_DAYS),
            admin_token=os.getenv("ADMIN_TOKEN", "admin-secret-token"),
            rate_limit=_env_int("RATE_LIMIT", DEFAULT_RATE_LIMIT),
            port=_env_int("PORT", DEFAULT_PORT),
        )


# ------------------
# Logging
# ------------------
def configure_logging(level=None):
    """Send logs to stdout. Level defaults to ``LOG_LEVEL`` or INFO."""
    level = level or os.getenv("LOG_LEVEL", "INFO")
    logger = logging.getLogger()
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(handler)
    return logger
