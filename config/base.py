# config.py
import os
from datetime import timedelta


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_id_list(value):
    """
    Parse a comma-separated list of provider identifiers (campaign/form IDs).

    Returns:
        tuple[int, ...]: Unique positive identifiers, in the order given.
    """

    if not value:
        return ()

    parsed: list[int] = []
    for raw_item in str(value).split(","):
        item = raw_item.strip()
        if not item:
            continue
        try:
            number = int(item)
        except ValueError:
            continue
        if number < 1:
            continue
        if number not in parsed:
            parsed.append(number)
    return tuple(parsed)


def _coerce_int(value, default, *, minimum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None and number < minimum:
        return default
    return number


def _coerce_float(value, default):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    return number


class Config:
    # SECRET_KEY must be set via environment variable for security
    # Generate with: python -c "import secrets; print(secrets.token_hex(32))"
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Only require SECRET_KEY in production mode
    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not SECRET_KEY and not _is_testing:
        import warnings

        warnings.warn(
            "SECRET_KEY not set. Using default for development only. "
            "This is insecure and should not be used in production.",
            UserWarning,
        )
        SECRET_KEY = "dev-secret-key-change-in-production"

    if not SECRET_KEY:
        SECRET_KEY = "test-secret-key-placeholder"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Webhook signing secrets, one per provider endpoint
    WEBCONNEX_NEW_MEMBER_HMAC = os.environ.get("WC_NEWMEMBER_HMAC")
    WEBCONNEX_PAYMENT_SUCCESS_HMAC = os.environ.get("WC_RECURRINGSUCCESS_HMAC")
    DONORBOX_HMAC = os.environ.get("DONORBOX_HMAC")

    # Campaign/form allow-lists; an empty webconnex list accepts every form
    DONORBOX_CAMPAIGN_IDS = _parse_id_list(os.environ.get("DONORBOX_CAMPAIGN_ID", ""))
    WEBCONNEX_FORM_IDS = _parse_id_list(os.environ.get("WEBCONNEX_FORM_IDS", ""))

    # Donorbox read API used by the backfill driver
    DONORBOX_API_URL = os.environ.get("DONORBOX_API_URL", "https://donorbox.org/api/v1")
    DONORBOX_API_EMAIL = os.environ.get("DONORBOX_API_EMAIL")
    DONORBOX_API_KEY = os.environ.get("DONORBOX_API_KEY")
    DONORBOX_API_PER_PAGE = _coerce_int(os.environ.get("DONORBOX_API_PER_PAGE"), 100, minimum=1)

    # Webconnex public API, used to resolve a transaction to its order for the report redirect
    WEBCONNEX_API_URL = os.environ.get("WEBCONNEX_API_URL", "https://api.webconnex.com/v2/public")
    WEBCONNEX_API_KEY = os.environ.get("WEBCONNEX_API_KEY")
    WEBCONNEX_PRODUCT = os.environ.get("WEBCONNEX_PRODUCT", "givingfuel.com")

    # Absolute base for links placed in outbound e-mails
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL")

    PAYMENTS_HTTP_TIMEOUT_SECONDS = _coerce_float(os.environ.get("PAYMENTS_HTTP_TIMEOUT_SECONDS"), 10.0)
    PAYMENTS_DEDUPLICATE_TRANSACTIONS = _coerce_bool(
        os.environ.get("PAYMENTS_DEDUPLICATE_TRANSACTIONS"),
        default=False,
    )
    PAYMENTS_MAX_UPLOAD_MB = _coerce_int(os.environ.get("PAYMENTS_MAX_UPLOAD_MB"), 25, minimum=1)

    # Discord invite collaborator
    DISCORD_API_URL = os.environ.get("DISCORD_API_URL", "https://discord.com/api/v10")
    DISCORD_BOT_TOKEN = os.environ.get("DISCORD_BOT_TOKEN")
    DISCORD_INVITE_CHANNEL_ID = os.environ.get("DISCORD_INVITE_CHANNEL_ID")

    # Welcome e-mail
    MAIL_REPLY_TO = os.environ.get("MAIL_REPLY_TO")
    MAIL_TIMEOUT_SECONDS = _coerce_float(os.environ.get("MAIL_TIMEOUT_SECONDS"), 15.0)
    WELCOME_EMAIL_SUBJECT = os.environ.get("WELCOME_EMAIL_SUBJECT", "Welcome! Your Discord invite")

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_COOKIE_SECURE = False  # Set to True in production with HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # CSRF protection
    WTF_CSRF_ENABLED = True


class DevelopmentConfig(Config):
    DEBUG = True
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # Use absolute path for SQLite - Windows needs forward slashes in URI
    db_path = os.path.join(instance_path, "membership_dev.db")
    db_path_normalized = db_path.replace("\\", "/")
    db_uri = f"sqlite:///{db_path_normalized}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {}


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_ECHO = False
    WEBCONNEX_NEW_MEMBER_HMAC = "test-webconnex-new-member-secret"
    WEBCONNEX_PAYMENT_SUCCESS_HMAC = "test-webconnex-payment-success-secret"
    DONORBOX_HMAC = "test-donorbox-secret"
    DONORBOX_CAMPAIGN_IDS = (4242,)
    WEBCONNEX_FORM_IDS = ()
    DONORBOX_API_EMAIL = None
    DONORBOX_API_KEY = None
    PAYMENTS_DEDUPLICATE_TRANSACTIONS = False
    WEBCONNEX_API_KEY = None
    PUBLIC_BASE_URL = "https://members.psychedelicclub.test"


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
    SESSION_COOKIE_SECURE = True
