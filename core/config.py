"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AccessGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Used to implement the DEBUG-conditional
      JWT_SECRET logic: dev mode generates a key with a warning, production
      mode refuses to start without one.

Signing secret:
  The secret is read here once and then passed explicitly into the token
  issuer and the access guard (see auth/tokens.py, auth/guard.py). Neither
  reads ambient state, so both can be exercised with arbitrary secrets.

  A missing or short JWT_SECRET raises ConfigurationError when Settings is
  constructed -- i.e. at startup, never on a request.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or notify/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigurationError

logger = logging.getLogger("accessgate.config")

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    the signing-secret rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///accessgate.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    jwt_secret: str = ""
    # Token lifetime is not a setting: it is fixed at one hour
    # (auth.tokens.TOKEN_LIFETIME_SECONDS).

    # False: a wrong role answers 401 like a missing token.
    # True: an authenticated wrong-role caller gets 403.
    strict_forbidden: bool = False

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    # Six-digit codes: keep guesses per client far below the 900,000 code space.
    verify_rate_limit: str = "10/minute"
    # Each resend mails the account owner.
    resend_rate_limit: str = "3/minute"

    # ------------------------------------------------------------------
    # Mail (empty smtp_host disables delivery)
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_timeout: float = 10.0
    mail_from: str = "no-reply@accessgate.local"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Enforce the JWT_SECRET policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            JWT_SECRET is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.jwt_secret:
            if self.debug:
                self.jwt_secret = secrets.token_hex(32)
                logger.warning("Using auto-generated JWT_SECRET. Tokens will not persist across restarts.")
            else:
                raise ConfigurationError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.jwt_secret) < _MIN_SECRET_LENGTH:
            raise ConfigurationError(f"JWT_SECRET must be at least {_MIN_SECRET_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
