"""Wizard runtime settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from START_WIZARD_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="START_WIZARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Port probing
    probe_host: str = "127.0.0.1"
    probe_timeout_ms: int = 400
    stack_probe_timeout_ms: int = 500
    wait_timeout_ms: int = 20_000
    wait_interval_ms: int = 250

    # Local stack readiness (only used when local_stack.wait_until_ready is set)
    stack_ready_timeout_ms: int = 20_000

    # Pause between the last signal and re-inspecting the port
    kill_settle_ms: int = 250

    # lsof / ps invocations
    command_timeout_s: int = 5

    # Config discovery
    config_filename: str = "start_wizard_config.py"

    # Output
    log_level: str = "warning"
    color: bool = True

    @field_validator(
        "probe_timeout_ms",
        "stack_probe_timeout_ms",
        "wait_timeout_ms",
        "wait_interval_ms",
        "stack_ready_timeout_ms",
        "command_timeout_s",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive number")
        return value

    @field_validator("kill_settle_ms")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value


settings = Settings()
