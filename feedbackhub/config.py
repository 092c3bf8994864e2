import os


def _csv(name: str, default: str) -> tuple:
    raw = os.getenv(name, default) or ""
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class BaseConfig:
    # Secrets (env in prod; dev/test may use defaults)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-not-secure")

    # Database (env in prod; dev/test may use default)
    try:
        from dotenv import dotenv_values
        _ENV_FALLBACK = dotenv_values(".env")
    except OSError:
        _ENV_FALLBACK = {}
    SQLALCHEMY_DATABASE_URI = (
        os.environ.get("DATABASE_URL")
        or _ENV_FALLBACK.get("DATABASE_URL")
        or "sqlite:///feedbackhub.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging / misc
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Flask-Limiter: soft per-address fallback for every route
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "1000 per hour")
    RATELIMIT_HEADERS_ENABLED = True

    # --- Ingestion policy (injected into the ingestion service at app creation) ---
    INGEST_RATE_LIMIT = os.getenv("INGEST_RATE_LIMIT", "60 per minute")
    # "fixed-window" | "moving-window"
    INGEST_RATE_LIMIT_STRATEGY = os.getenv("INGEST_RATE_LIMIT_STRATEGY", "moving-window")
    FEEDBACK_CATEGORIES = _csv("FEEDBACK_CATEGORIES", "bug,feature,general,ui-ux")
    RATING_MIN = int(os.getenv("RATING_MIN", "1"))
    RATING_MAX = int(os.getenv("RATING_MAX", "5"))
    FEEDBACK_CONTENT_MAX_LENGTH = int(os.getenv("FEEDBACK_CONTENT_MAX_LENGTH", "5000"))
    FEEDBACK_METADATA_MAX_BYTES = int(os.getenv("FEEDBACK_METADATA_MAX_BYTES", "8192"))
    FEEDBACK_METADATA_MAX_DEPTH = int(os.getenv("FEEDBACK_METADATA_MAX_DEPTH", "8"))
    # Request body cap (413 before anything is read): worst-case \uXXXX escaping
    # of content plus device_info and metadata, with room for the envelope
    MAX_CONTENT_LENGTH = int(os.getenv(
        "MAX_CONTENT_LENGTH",
        str(6 * FEEDBACK_CONTENT_MAX_LENGTH + 12 * FEEDBACK_METADATA_MAX_BYTES + 4096),
    ))

    # --- Credentials ---
    # Keyed hash for API keys; changing it invalidates every issued key
    API_KEY_SALT = os.getenv("API_KEY_SALT", "dev-api-key-salt")
    ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN")

    # --- Admin listing ---
    ADMIN_PAGE_SIZE = int(os.getenv("ADMIN_PAGE_SIZE", "50"))
    ADMIN_PAGE_SIZE_MAX = int(os.getenv("ADMIN_PAGE_SIZE_MAX", "500"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    # Required values are enforced at startup in create_app()
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")
    API_KEY_SALT = os.environ.get("API_KEY_SALT")


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    RATELIMIT_ENABLED = False
    API_KEY_SALT = "test-api-key-salt"
    ADMIN_API_TOKEN = os.environ.get("ADMIN_API_TOKEN", "test-admin-token")


_ENV_MAP = {
    "development": DevelopmentConfig,
    "staging": ProductionConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
