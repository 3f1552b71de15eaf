"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

DEFAULT_TOKEN_TTL: Final[timedelta] = timedelta(hours=24)

# Load .env during development (no-op when the file is missing)
load_dotenv()

_DURATION_UNITS: Final[dict[str, float]] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer environment variable, falling back on bad input."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    """Parse a float environment variable, falling back on bad input."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return float(val.strip())
    except ValueError:
        return default


def parse_duration(raw: str | None) -> timedelta | None:
    """Parse a duration string such as ``"24h"``, ``"1h30m"`` or ``"900s"``.

    The grammar is a sequence of ``<number><unit>`` pairs with units
    ``ns``, ``us``, ``ms``, ``s``, ``m`` and ``h``, optionally signed.

    :param raw: Text to parse.
    :type raw: str | None
    :returns: Parsed duration, or ``None`` when ``raw`` is empty or invalid.
    :rtype: datetime.timedelta | None
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)

    seconds = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            return None
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        return None
    return timedelta(seconds=sign * seconds)


def token_ttl(raw: str | None) -> timedelta:
    """Return the access/refresh token lifetime for a ``JWT_EXPIRATION`` value.

    Empty, unparsable and non-positive values fall back to 24 hours.
    """
    parsed = parse_duration(raw)
    if parsed is None or parsed <= timedelta(0):
        return DEFAULT_TOKEN_TTL
    return parsed


def _database_url() -> str:
    """Resolve the database URL from ``DATABASE_URL`` or the ``DB_*`` parts."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("DB_HOST")
    if not host:
        return "sqlite:///./dev.db"
    return "postgresql+psycopg://{user}:{password}@{host}:{port}/{name}".format(
        user=os.getenv("DB_USER", "postgres"),
        password=os.getenv("DB_PASSWORD", ""),
        host=host,
        port=os.getenv("DB_PORT", "5432"),
        name=os.getenv("DB_NAME", "postgres"),
    )


def _redis_url() -> str | None:
    """Resolve the Redis URL from ``REDIS_URL`` or the ``REDIS_*`` parts."""
    url = os.getenv("REDIS_URL")
    if url:
        return url
    host = os.getenv("REDIS_HOST")
    if not host:
        return None
    password = os.getenv("REDIS_PASSWORD")
    auth = f":{password}@" if password else ""
    return f"redis://{auth}{host}:{os.getenv('REDIS_PORT', '6379')}/0"


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    PORT: int
        Listening port used by ``python -m authsvc`` and gunicorn.
    JWT_SECRET_KEY: str
        Symmetric secret used by ``flask-jwt-extended`` to sign access tokens
        (sourced from ``JWT_SECRET``).
    JWT_ACCESS_TOKEN_EXPIRES: datetime.timedelta
        Access token lifetime parsed from ``JWT_EXPIRATION``. Refresh tokens
        and revocation entries share it.
    JWT_ALGORITHM / JWT_DECODE_ALGORITHMS:
        Signing algorithm and the HMAC family accepted on decode.
    GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET / GOOGLE_REDIRECT_URL: str
        OAuth2 client registration for the federated login.
    OAUTH_STATE_TTL: int
        Seconds an issued ``state`` nonce stays redeemable.
    OAUTH_HTTP_TIMEOUT: float
        Timeout in seconds for each call to the identity provider.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Session store connection string.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    PORT = env_int("PORT", 8080)

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET", "CHANGE_ME_JWT")
    JWT_ACCESS_TOKEN_EXPIRES = token_ttl(os.getenv("JWT_EXPIRATION"))
    JWT_ALGORITHM = "HS256"
    JWT_DECODE_ALGORITHMS = ["HS256", "HS384", "HS512"]

    # Federated login (Google)
    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
    GOOGLE_REDIRECT_URL = os.getenv("GOOGLE_REDIRECT_URL", "")
    OAUTH_STATE_TTL = env_int("OAUTH_STATE_TTL", 600)
    OAUTH_HTTP_TIMEOUT = env_float("OAUTH_HTTP_TIMEOUT", 10.0)

    # Storage
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = _redis_url()

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Leaves ``REDIS_URL`` unset; tests install a fakeredis-backed store.
    - Pins a signing secret long enough for HMAC-SHA256.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    REDIS_URL = None
    JWT_SECRET_KEY = "testing-secret-key-with-enough-entropy-0123456789"
    JWT_ACCESS_TOKEN_EXPIRES = DEFAULT_TOKEN_TTL
    GOOGLE_CLIENT_ID = "test-client-id"
    GOOGLE_CLIENT_SECRET = "test-client-secret"
    GOOGLE_REDIRECT_URL = "http://localhost/api/v1/auth/login/google/callback"
    USE_PROXYFIX = False
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
