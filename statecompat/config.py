"""Configuration settings for statecompat.

Uses Pydantic Settings for validation and environment variable support.
All settings can be overridden via STATECOMPAT_* environment variables.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class CompatSettings(BaseSettings):
    """Global configuration for payload codecs and stores."""

    # Payload generation used by PayloadStore.save when none is given
    default_format: str = "current"  # "legacy" | "current"

    # Store
    store_dir: str = "data/payloads"
    json_indent: int = 2

    # Field enumeration
    cache_fields: bool = True

    # Restore
    log_stray_keys: bool = True  # debug-log payload keys matching no field

    model_config = {"env_prefix": "STATECOMPAT_"}

    @field_validator("default_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("legacy", "current"):
            raise ValueError(f"default_format must be 'legacy' or 'current', got {value!r}")
        return value
