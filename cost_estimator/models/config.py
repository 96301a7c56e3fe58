"""
Configuration Models

Pydantic models for system configuration validation.
"""

import json
import os
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationInfo, field_validator


class ExecutionStrategy(str, Enum):
    """How the coordinator schedules the resolvers."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class OneTimeFeeMode(str, Enum):
    """How one-time fees enter the annual and monthly aggregates.

    reference: added undiminished to annual, /12 to monthly and once to total.
    amortized: spread over the program so annual x duration == total.
    """

    REFERENCE = "reference"
    AMORTIZED = "amortized"


class OracleConfig(BaseModel):
    """Oracle model selection. None lets the SDK pick its default model."""

    model: Optional[str] = Field(default=None)
    search_model: Optional[str] = Field(default=None)
    search_max_turns: int = Field(default=6, gt=0, le=20)


class GatewayConfig(BaseModel):
    """Retry policy of the oracle gateway."""

    max_attempts: int = Field(default=2, gt=0, le=10)
    backoff_seconds: float = Field(default=1.0, ge=0.0, le=30.0)


class RateLimiting(BaseModel):
    """Rate limiting for oracle calls."""

    oracle_calls_per_minute: int = Field(
        default=30,
        gt=0,
        le=600,
        description="Maximum oracle calls per model per minute",
    )


class Timeouts(BaseModel):
    """Timeout configuration in seconds."""

    estimation_run: float = Field(default=60.0, gt=0)
    url_check: float = Field(default=10.0, gt=0)


class ConfidenceThresholds(BaseModel):
    """Confidence thresholds (0-1) used to trust or discard oracle figures."""

    official_tuition: float = Field(default=0.7, ge=0.0, le=1.0)
    application_fee: float = Field(default=0.6, ge=0.0, le=1.0)
    health_insurance: float = Field(default=0.7, ge=0.0, le=1.0)


class ExecutionConfig(BaseModel):
    """Coordinator behaviour."""

    strategy: ExecutionStrategy = Field(default=ExecutionStrategy.SEQUENTIAL)
    one_time_fee_mode: OneTimeFeeMode = Field(default=OneTimeFeeMode.REFERENCE)
    verify_source_urls: bool = Field(
        default=False,
        description="Issue a live HTTP request to confirm tuition source URLs",
    )


class TaskStoreConfig(BaseModel):
    """Expiry policy of the in-memory estimation task store."""

    ttl_seconds: float = Field(default=600.0, gt=0)
    max_entries: int = Field(default=256, gt=0, le=100_000)


class TuitionConfidenceBands(BaseModel):
    """Confidence assigned to the non-official tuition resolution paths."""

    estimate_min: float = Field(default=0.4, ge=0.0, le=1.0)
    estimate_max: float = Field(default=0.6, ge=0.0, le=1.0)
    static_table: float = Field(default=0.3, ge=0.0, le=1.0)

    @field_validator("estimate_max")
    @classmethod
    def validate_band_ordering(cls, v: float, info: ValidationInfo) -> float:
        """Validate estimate_min <= estimate_max."""
        low = info.data.get("estimate_min", 0.4)
        if v < low:
            raise ValueError(
                f"estimate_max ({v}) must be >= estimate_min ({low})"
            )
        return v


class SystemParams(BaseModel):
    """System parameters configuration model."""

    oracle: OracleConfig = Field(default_factory=OracleConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    rate_limiting: RateLimiting = Field(default_factory=RateLimiting)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    confidence_thresholds: ConfidenceThresholds = Field(
        default_factory=ConfidenceThresholds
    )
    tuition_confidence: TuitionConfidenceBands = Field(
        default_factory=TuitionConfidenceBands
    )
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    task_store: TaskStoreConfig = Field(default_factory=TaskStoreConfig)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> "SystemParams":
        """Load system parameters from config file and environment.

        Reads .env (python-dotenv) and applies COST_ESTIMATOR_* overrides on
        top of the file contents. When no path is given and the default file
        is absent, built-in defaults are used.

        Args:
            config_path: Path to system_params.json (defaults to config/system_params.json)

        Returns:
            SystemParams: Validated configuration

        Raises:
            FileNotFoundError: If an explicitly given config file doesn't exist
            ValueError: If config validation fails
        """
        load_dotenv()

        config_data: dict = {}
        if config_path is None:
            default_path = Path("config/system_params.json")
            if default_path.exists():
                config_data = _read_json(default_path)
        else:
            config_path = Path(config_path)
            if not config_path.exists():
                raise FileNotFoundError(
                    f"Config file not found: {config_path}. "
                    f"Copy {config_path.stem}.example.json to {config_path.name}"
                )
            config_data = _read_json(config_path)

        _apply_env_overrides(config_data)
        return cls(**config_data)


def _read_json(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# env var -> (section, key); section None means top level
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    "COST_ESTIMATOR_MODEL": ("oracle", "model"),
    "COST_ESTIMATOR_SEARCH_MODEL": ("oracle", "search_model"),
    "COST_ESTIMATOR_STRATEGY": ("execution", "strategy"),
    "COST_ESTIMATOR_FEE_MODE": ("execution", "one_time_fee_mode"),
    "COST_ESTIMATOR_TIMEOUT": ("timeouts", "estimation_run"),
    "COST_ESTIMATOR_LOG_LEVEL": (None, "log_level"),
}


def _apply_env_overrides(config_data: dict) -> None:
    for env_var, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if not value:
            continue
        if section is None:
            config_data[key] = value
        else:
            config_data.setdefault(section, {})[key] = value
