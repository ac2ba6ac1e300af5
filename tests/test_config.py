"""
Configuration Tests
-------------------
Tests for ExecutionConfig merging, retry policy and YAML/env loading.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from infra.config import ExecutionConfig, TOOL_DEFAULTS, ToolkitConfig, load_config


class TestExecutionConfig:
    """Merge, retry and backoff."""

    def test_tool_defaults(self):
        assert TOOL_DEFAULTS.timeout_seconds == 300.0
        assert TOOL_DEFAULTS.max_attempts == 1

    def test_merge_primary_wins_per_field(self):
        primary = ExecutionConfig(timeout_seconds=5.0)
        fallback = ExecutionConfig(timeout_seconds=60.0, max_attempts=3)
        merged = ExecutionConfig.merge(primary, fallback)

        assert merged.timeout_seconds == 5.0
        assert merged.max_attempts == 3

    def test_merge_with_none(self):
        config = ExecutionConfig(max_attempts=2)
        assert ExecutionConfig.merge(None, config) is config
        assert ExecutionConfig.merge(config, None) is config

    def test_single_attempt_never_retries(self):
        assert not TOOL_DEFAULTS.should_retry(RuntimeError("x"), attempt=1)

    def test_retry_until_max_attempts(self):
        config = ExecutionConfig(max_attempts=3)
        assert config.should_retry(RuntimeError("x"), attempt=1)
        assert config.should_retry(RuntimeError("x"), attempt=2)
        assert not config.should_retry(RuntimeError("x"), attempt=3)

    def test_retry_predicate(self):
        config = ExecutionConfig(
            max_attempts=3,
            retry_on=lambda e: isinstance(e, ConnectionError),
        )
        assert config.should_retry(ConnectionError("reset"), attempt=1)
        assert not config.should_retry(ValueError("bad"), attempt=1)

    def test_exponential_backoff_capped(self):
        config = ExecutionConfig(initial_backoff=0.5, backoff_multiplier=2.0, max_backoff=3.0)
        assert config.backoff_delay(1) == 0.5
        assert config.backoff_delay(2) == 1.0
        assert config.backoff_delay(3) == 2.0
        assert config.backoff_delay(4) == 3.0

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            ExecutionConfig(timeout_seconds=0)
        with pytest.raises(ValidationError):
            ExecutionConfig(max_attempts=0)


class TestLoadConfig:
    """YAML loading with environment overrides."""

    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        for name in ("PARALLEL", "ALLOW_TOOL_DELETION", "MAX_WORKERS",
                     "TIMEOUT_SECONDS", "MAX_ATTEMPTS"):
            monkeypatch.delenv(f"TOOLBELT_{name}", raising=False)

        config = load_config(tmp_path / "missing.yaml")
        assert config == ToolkitConfig()
        assert config.parallel is False
        assert config.allow_tool_deletion is True

    def test_yaml_values(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TOOLBELT_PARALLEL", raising=False)
        monkeypatch.delenv("TOOLBELT_TIMEOUT_SECONDS", raising=False)
        path = tmp_path / "toolbelt.yaml"
        path.write_text(
            "parallel: true\n"
            "max_workers: 4\n"
            "execution:\n"
            "  timeout_seconds: 30\n"
            "  max_attempts: 2\n"
        )

        config = load_config(path)
        assert config.parallel is True
        assert config.max_workers == 4
        assert config.execution.timeout_seconds == 30.0
        assert config.execution.max_attempts == 2

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "toolbelt.yaml"
        path.write_text("parallel: false\nexecution:\n")
        monkeypatch.setenv("TOOLBELT_PARALLEL", "true")
        monkeypatch.setenv("TOOLBELT_TIMEOUT_SECONDS", "12.5")

        config = load_config(path)
        assert config.parallel is True
        assert config.execution.timeout_seconds == 12.5
