"""
Toolkit Configuration
---------------------
Execution and toolkit settings loaded from YAML with environment overrides.

Precedence for execution settings, highest first:
    call site > toolkit config > TOOL_DEFAULTS

Environment variables override file values:
    TOOLBELT_PARALLEL, TOOLBELT_ALLOW_TOOL_DELETION, TOOLBELT_MAX_WORKERS,
    TOOLBELT_TIMEOUT_SECONDS, TOOLBELT_MAX_ATTEMPTS
"""

from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union
import logging
import os

import yaml
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "TOOLBELT_"


class ExecutionConfig(BaseModel):
    """
    Timeout and retry settings for a single tool call.

    Unset fields (None) fall through to the next config in a merge.
    """
    model_config = ConfigDict(frozen=True)

    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    max_attempts: Optional[int] = Field(default=None, ge=1)
    initial_backoff: Optional[float] = Field(default=None, ge=0)
    max_backoff: Optional[float] = Field(default=None, ge=0)
    backoff_multiplier: Optional[float] = Field(default=None, ge=1)
    retry_on: Optional[Callable[[BaseException], bool]] = None

    @classmethod
    def merge(
        cls,
        primary: Optional["ExecutionConfig"],
        fallback: Optional["ExecutionConfig"]
    ) -> Optional["ExecutionConfig"]:
        """Field-by-field merge; primary wins wherever it is set."""
        if primary is None:
            return fallback
        if fallback is None:
            return primary

        merged = {}
        for name in cls.model_fields:
            value = getattr(primary, name)
            merged[name] = value if value is not None else getattr(fallback, name)
        return cls(**merged)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Check if a failed attempt (1-based) should be retried."""
        if attempt >= (self.max_attempts or 1):
            return False
        if self.retry_on is None:
            return True
        return bool(self.retry_on(error))

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds before retrying after the given attempt."""
        initial = self.initial_backoff if self.initial_backoff is not None else 1.0
        ceiling = self.max_backoff if self.max_backoff is not None else 10.0
        multiplier = self.backoff_multiplier or 2.0
        return min(initial * (multiplier ** max(attempt - 1, 0)), ceiling)


# 5 minutes, no retry
TOOL_DEFAULTS = ExecutionConfig(timeout_seconds=300.0, max_attempts=1)


class ToolkitConfig(BaseModel):
    """Toolkit-wide settings."""
    parallel: bool = False
    allow_tool_deletion: bool = True
    max_workers: Optional[int] = Field(default=None, ge=1)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolkitConfig":
        return cls.model_validate(data or {})


_ENV_OVERRIDES = {
    "PARALLEL": ("parallel",),
    "ALLOW_TOOL_DELETION": ("allow_tool_deletion",),
    "MAX_WORKERS": ("max_workers",),
    "TIMEOUT_SECONDS": ("execution", "timeout_seconds"),
    "MAX_ATTEMPTS": ("execution", "max_attempts"),
}


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay TOOLBELT_* environment variables onto raw config data."""
    logger = logging.getLogger("toolbelt.infra.config")
    for suffix, path in _ENV_OVERRIDES.items():
        value = os.getenv(ENV_PREFIX + suffix)
        if value is None:
            continue
        section = data
        for part in path[:-1]:
            if not isinstance(section.get(part), dict):
                section[part] = {}
            section = section[part]
        section[path[-1]] = value
        logger.debug(f"Config override from environment: {ENV_PREFIX + suffix}")
    return data


def load_config(path: Optional[Union[str, Path]] = None) -> ToolkitConfig:
    """
    Load toolkit configuration.

    A missing file is not an error: defaults plus environment
    overrides are used instead.
    """
    logger = logging.getLogger("toolbelt.infra.config")
    data: Dict[str, Any] = {}

    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            logger.info(f"Loaded config from {config_path}")
        else:
            logger.warning(f"Config file not found: {config_path}")

    return ToolkitConfig.from_dict(_apply_env_overrides(data))
