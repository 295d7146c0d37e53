"""Core shared utilities for llm-bench."""

from core.config import DEFAULT_CONFIG_NAME, Settings, find_project_root, load_settings, resolve_config_path
from core.errors import (
    BenchmarkError,
    ConfigError,
    InvalidRunRequestError,
    LLMBError,
    ResultNotFoundError,
    RunNotFoundError,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "Settings",
    "find_project_root",
    "load_settings",
    "resolve_config_path",
    "LLMBError",
    "ConfigError",
    "InvalidRunRequestError",
    "BenchmarkError",
    "RunNotFoundError",
    "ResultNotFoundError",
]
