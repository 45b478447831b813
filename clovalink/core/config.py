from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from clovalink.security.password_strength import validate_passphrase_strength

LOST_KEY_POLICIES = ("regenerate", "fail")
MIN_RSA_KEY_SIZE = 2048


class Settings(BaseSettings):
    # ClovaLink API
    api_base_url: str = "http://localhost:3000"
    api_token: Optional[str] = None
    request_timeout: float = 10.0
    verify_tls: bool = True

    # Conversation refresh
    poll_interval_seconds: float = 10.0

    # Encryption policy
    require_encryption: bool = False
    on_lost_key: str = "regenerate"  # regenerate, fail
    rsa_key_size: int = MIN_RSA_KEY_SIZE

    # Local key store
    keystore_url: str = "sqlite:///clovalink_keys.db"
    keystore_passphrase: Optional[str] = None
    key_cache_ttl: int = 300

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CLOVALINK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


def validate_settings(active_settings: Settings) -> None:
    """Reject settings the client cannot run with; lists every problem at once."""
    errors = []

    if active_settings.poll_interval_seconds <= 0:
        errors.append("poll_interval_seconds must be > 0")

    if active_settings.request_timeout <= 0:
        errors.append("request_timeout must be > 0")

    if active_settings.on_lost_key not in LOST_KEY_POLICIES:
        allowed = ", ".join(LOST_KEY_POLICIES)
        errors.append(f"on_lost_key must be one of: {allowed}")

    if active_settings.rsa_key_size < MIN_RSA_KEY_SIZE:
        errors.append(f"rsa_key_size must be >= {MIN_RSA_KEY_SIZE}")

    if active_settings.key_cache_ttl < 0:
        errors.append("key_cache_ttl must be >= 0")

    if active_settings.keystore_passphrase is not None:
        ok, message = validate_passphrase_strength(active_settings.keystore_passphrase)
        if not ok:
            errors.append(message)

    if errors:
        raise ValueError("Invalid client configuration:\n- " + "\n- ".join(errors))


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()
