from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ssoauth.shared.credentials import SignatureMethod
from ssoauth.utilities.logging import LogLevel

DEFAULT_AUTHORITY_URL = "https://login.ubuntu.com/api/v2"


class SSOSettings(BaseSettings):
    """SSO client settings.

    All settings can be configured via environment variables with the prefix SSOAUTH_.
    For example, SSOAUTH_STORAGE_BACKEND=memory keeps credentials out of the keyring.
    """

    model_config = SettingsConfigDict(
        env_prefix="SSOAUTH_",
        env_file=".env",
        extra="ignore",
    )

    # Authority settings
    authority_url: AnyHttpUrl = Field(
        default=AnyHttpUrl(DEFAULT_AUTHORITY_URL),
        description="Base URL of the authority's API; tokens are requested from {authority_url}/tokens/oauth",
    )
    token_name: str = Field(default="ssoauth", min_length=1)
    """Name the authority files the issued token under."""

    # Timeouts, in seconds
    request_timeout: float = Field(default=30.0, gt=0)
    operation_timeout: float | None = Field(default=120.0, gt=0)
    """Upper bound for a whole login or credential lookup; None disables it."""

    # Persistence
    storage_backend: Literal["keyring", "memory"] = "keyring"
    keyring_service: str = "ssoauth"
    keyring_account: str = "credentials"

    signature_method: SignatureMethod = SignatureMethod.HMAC_SHA1

    log_level: LogLevel = "INFO"
