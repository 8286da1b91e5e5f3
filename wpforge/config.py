import os


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    # --- Sites ---
    # Fallback for the "domain" system setting (e.g. "sites.example.com").
    BASE_DOMAIN = os.environ.get("BASE_DOMAIN")
    DEFAULT_PHP_VERSION = os.environ.get("DEFAULT_PHP_VERSION", "8.2")
    SITE_REMINDER_DAYS = int(os.environ.get("SITE_REMINDER_DAYS", 7))

    # --- ServerAvatar (hosting automation) ---
    SERVERAVATAR_API_URL = os.environ.get(
        "SERVERAVATAR_API_URL", "https://api.serveravatar.com"
    )
    SERVERAVATAR_API_TOKEN = os.environ.get("SERVERAVATAR_API_TOKEN")
    SERVERAVATAR_ORGANIZATION_ID = os.environ.get("SERVERAVATAR_ORGANIZATION_ID")
    SERVERAVATAR_TIMEOUT = int(os.environ.get("SERVERAVATAR_TIMEOUT", 60))  # seconds

    # --- Cloudflare (DNS) ---
    CLOUDFLARE_API_URL = os.environ.get(
        "CLOUDFLARE_API_URL", "https://api.cloudflare.com/client/v4"
    )
    CLOUDFLARE_API_TOKEN = os.environ.get("CLOUDFLARE_API_TOKEN")
    CLOUDFLARE_ZONE_ID = os.environ.get("CLOUDFLARE_ZONE_ID")
    CLOUDFLARE_TIMEOUT = int(os.environ.get("CLOUDFLARE_TIMEOUT", 30))  # seconds

    # --- Email (SMTP) ---
    MAIL_SMTP_HOST = os.environ.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    MAIL_SMTP_PORT = int(os.environ.get("MAIL_SMTP_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")          # app password
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "WP Forge")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")  # defaults to MAIL_USERNAME

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    # --- Rate limiting (Flask-Limiter) ---
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    LOGIN_RATE_LIMIT = os.environ.get("LOGIN_RATE_LIMIT", "15 per minute")

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "SERVERAVATAR_API_TOKEN",
            "SERVERAVATAR_ORGANIZATION_ID",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — in-memory SQLite, CSRF disabled, remote APIs faked."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BASE_DOMAIN = "sites.test"
    SERVERAVATAR_API_URL = "https://serveravatar.test"
    SERVERAVATAR_API_TOKEN = "sa_test_token"
    SERVERAVATAR_ORGANIZATION_ID = "42"
    SERVERAVATAR_TIMEOUT = 5
    CLOUDFLARE_API_URL = "https://cloudflare.test/client/v4"
    CLOUDFLARE_API_TOKEN = "cf_test_token"
    CLOUDFLARE_ZONE_ID = "zone_test"
    CLOUDFLARE_TIMEOUT = 5
    WTF_CSRF_ENABLED = False  # disable CSRF for test forms
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
