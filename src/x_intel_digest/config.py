"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
digest run, loading and validating environment variables at startup.
Every settings group is frozen: the loaded values form a read-only
snapshot that is passed explicitly into the crawler and the notifier.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class XSettings(BaseSettings):
    """X (Twitter) crawler settings."""

    model_config = SettingsConfigDict(env_prefix="X_", frozen=True)

    accounts: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        alias="X_ACCOUNTS",
        description="Account handles to monitor (comma separated or JSON list)",
    )
    bearer_token: SecretStr | None = Field(
        default=None,
        alias="X_BEARER_TOKEN",
        description="Official API v2 bearer token",
    )
    api_key: SecretStr | None = Field(
        default=None,
        alias="X_API_KEY",
        description="Official API consumer key",
    )
    api_secret: SecretStr | None = Field(
        default=None,
        alias="X_API_SECRET",
        description="Official API consumer secret",
    )
    kit_dir: str = Field(
        default="x-kit",
        alias="X_KIT_DIR",
        description="Working directory of the cookie-session crawler",
    )
    kit_command: str = Field(
        default="bun run scripts/crawl-user.ts",
        alias="X_KIT_COMMAND",
        description="Command run per account; the handle is appended",
    )
    kit_timeout: float = Field(
        default=300.0,
        alias="X_KIT_TIMEOUT",
        description="Per-account timeout for the crawler command, in seconds",
        gt=0,
    )
    timeout: float = Field(
        default=30.0,
        alias="X_TIMEOUT",
        description="HTTP timeout for API and embedded timeline requests",
        gt=0,
    )

    @field_validator("accounts", mode="before")
    @classmethod
    def split_accounts(cls, v: object) -> object:
        """Accept a comma separated string or a JSON list of handles."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @property
    def has_api_credentials(self) -> bool:
        """Check if the official API tier can authenticate."""
        if self.bearer_token is not None and self.bearer_token.get_secret_value():
            return True
        return self.api_key is not None and self.api_secret is not None


class ProxySettings(BaseSettings):
    """Outbound proxy settings for the crawler."""

    model_config = SettingsConfigDict(env_prefix="", frozen=True)

    enabled: bool = Field(
        default=False,
        alias="CRAWLER_PROXY_ENABLED",
        description="Route embedded timeline requests through the proxy",
    )
    url: str | None = Field(
        default=None,
        alias="PROXY_URL",
        description="Proxy URL, e.g. http://127.0.0.1:7890",
    )

    @property
    def active_url(self) -> str | None:
        """Return the proxy URL only when proxying is switched on."""
        if self.enabled and self.url:
            return self.url
        return None


class OneBotSettings(BaseSettings):
    """OneBot (QQ bot) delivery settings."""

    model_config = SettingsConfigDict(env_prefix="ONEBOT_", frozen=True)

    api_url: str = Field(
        default="",
        alias="ONEBOT_API_URL",
        description="OneBot HTTP API endpoint",
    )
    access_token: SecretStr | None = Field(
        default=None,
        alias="ONEBOT_ACCESS_TOKEN",
        description="Optional bearer token for the OneBot API",
    )
    group_id: int = Field(
        default=0,
        alias="ONEBOT_GROUP_ID",
        description="QQ group to deliver to (0 disables)",
        ge=0,
    )
    user_id: int = Field(
        default=0,
        alias="ONEBOT_USER_ID",
        description="QQ user to deliver to privately (0 disables)",
        ge=0,
    )
    timeout: float = Field(
        default=10.0,
        alias="ONEBOT_TIMEOUT",
        description="HTTP timeout per delivery, in seconds",
        gt=0,
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate API URL format."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("ONEBOT_API_URL must be an HTTP(S) endpoint")
        return v

    @property
    def enabled(self) -> bool:
        """Check if OneBot delivery is configured."""
        return bool(self.api_url) and (self.group_id > 0 or self.user_id > 0)


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from x_intel_digest.config import get_settings

        settings = get_settings()
        print(settings.x.accounts)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Nested configuration groups
    x: XSettings = Field(default_factory=XSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    onebot: OneBotSettings = Field(default_factory=OneBotSettings)

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    digest_label: str = Field(
        default="X",
        alias="DIGEST_LABEL",
        description="Topic label shown in the digest header",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Render the digest without delivering it",
    )

    def redacted_summary(self) -> dict[str, Any]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "x": {
                "accounts": str(len(self.x.accounts)),
                "bearer_token": "(set)" if self.x.bearer_token else "(not set)",
                "api_key": "(set)" if self.x.api_key else "(not set)",
                "kit_dir": self.x.kit_dir,
            },
            "proxy": self._redact_url(self.proxy.active_url) if self.proxy.active_url else "(off)",
            "onebot": {
                "api_url": self.onebot.api_url or "(not set)",
                "access_token": "(set)" if self.onebot.access_token else "(not set)",
                "group_id": str(self.onebot.group_id or "(not set)"),
                "user_id": str(self.onebot.user_id or "(not set)"),
            },
            "onebot_enabled": str(self.onebot.enabled),
            "log_level": self.log_level,
            "digest_label": self.digest_label,
            "dry_run": str(self.dry_run),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            # URL has credentials - redact the password
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
