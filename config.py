import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _data_dir():
    # Prefer external data dir for deployments
    data_dir = os.environ.get("INVENTORY_DATA_DIR")
    if data_dir:
        os.makedirs(data_dir, exist_ok=True)
        return data_dir
    return BASE_DIR


def _db_uri():
    # Fallback to DATABASE_URL or local sqlite
    if os.environ.get("INVENTORY_DATA_DIR"):
        return "sqlite:///" + os.path.join(_data_dir(), "assettrack.db")
    return os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "assettrack.db"),
    )


def _flag(name, default="false"):
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")  # change in production
    SQLALCHEMY_DATABASE_URI = _db_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie carries the login
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_DURATION = 30 * 24 * 60 * 60

    # CSRF token travels in the X-CSRFToken header for JSON clients
    WTF_CSRF_ENABLED = _flag("WTF_CSRF_ENABLED", "true")
    WTF_CSRF_TIME_LIMIT = None

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(_data_dir(), "uploads"))
    BACKUP_DIR = os.environ.get("BACKUP_DIR", os.path.join(_data_dir(), "backups"))
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
    STORAGE_LIMIT_BYTES = 512 * 1024 * 1024

    LOG_DIR = os.environ.get("LOG_DIR", os.path.join(_data_dir(), "logs"))
    LOG_FILE = os.environ.get("LOG_FILE", "assettrack.log")

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "25"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "200"))

    # Count assets with no store whose free-text location names an in-scope store
    ASSET_LOCATION_FALLBACK = _flag("ASSET_LOCATION_FALLBACK")
