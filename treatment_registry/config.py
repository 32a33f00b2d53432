"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class RegistryConfig(BaseModel):
    """Registry engine settings."""

    name: str = Field(default="treatment-registry", min_length=1, description="Registry name")
    emit_events: bool = Field(default=True, description="Dispatch events after each mutation")
    event_sink: Literal["structlog", "memory"] = Field(
        default="structlog", description="Default sink wired by build_registry"
    )


class LedgerConfig(BaseModel):
    """In-memory ledger settings used when no external payments service is wired."""

    opening_balance: int = Field(
        default=0, ge=0, description="Balance credited to accounts on first sight"
    )
    unit: str = Field(default="units", min_length=1, description="Display label for amounts")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    registry_config = RegistryConfig(
        name=os.getenv("REGISTRY_NAME", "treatment-registry"),
        emit_events=_parse_bool(os.getenv("REGISTRY_EMIT_EVENTS"), True),
        event_sink=cast(
            Literal["structlog", "memory"],
            os.getenv("REGISTRY_EVENT_SINK", "structlog").strip().lower(),
        ),
    )

    ledger_config = LedgerConfig(
        opening_balance=int(os.getenv("LEDGER_OPENING_BALANCE", "0")),
        unit=os.getenv("LEDGER_UNIT", "units"),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        registry=registry_config,
        ledger=ledger_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level} ({config.logging.format})")

    print("\nREGISTRY")
    print(f"Name: {config.registry.name}")
    print(f"Events Enabled: {config.registry.emit_events}")
    print(f"Event Sink: {config.registry.event_sink}")

    print("\nLEDGER")
    print(f"Opening Balance: {config.ledger.opening_balance} {config.ledger.unit}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
