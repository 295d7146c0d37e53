"""Project discovery and settings loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "llmb.yaml"
PROJECT_MARKERS = (DEFAULT_CONFIG_NAME, "pyproject.toml", ".git")


class EndpointRuleConfig(BaseModel):
    """Maps model name fragments to an inference endpoint."""
    name: str
    patterns: List[str] = Field(default_factory=list)
    url: str


class EndpointsConfig(BaseModel):
    default: str = "http://localhost:11436"
    rules: List[EndpointRuleConfig] = Field(
        default_factory=lambda: [
            EndpointRuleConfig(
                name="medical",
                patterns=["meditron", "medllama2", "cniongolo/biomistral"],
                url="http://localhost:11434",
            ),
            EndpointRuleConfig(name="translator", patterns=["aya"], url="http://localhost:11435"),
        ]
    )
    overrides: Dict[str, str] = Field(default_factory=dict)


class GenerationConfig(BaseModel):
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = Field(default=1000, gt=0)


class BenchmarkConfig(BaseModel):
    batch_timeout: float = Field(default=60.0, gt=0)
    stream_timeout: float = Field(default=30.0, gt=0)
    health_timeout: float = Field(default=5.0, gt=0)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    questions_file: Optional[str] = None


class StorageConfig(BaseModel):
    results_dir: str = "benchmark_results"
    max_history: int = Field(default=1000, gt=0)


class Settings(BaseModel):
    """Validated llm-bench configuration."""
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)
    benchmark: BenchmarkConfig = Field(default_factory=BenchmarkConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    source: Optional[str] = None


def find_project_root(start_dir: Optional[Path] = None) -> Path:
    """Find project root by scanning upward for known project markers."""
    current = (start_dir or Path.cwd()).resolve()

    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in PROJECT_MARKERS):
            return candidate

    return current


def resolve_config_path(config_path: Optional[str] = None, start_dir: Optional[Path] = None) -> Optional[Path]:
    """Resolve a config path from explicit input or project root discovery.

    An explicit path must exist. Without one, ``None`` is returned when the
    project root holds no ``llmb.yaml`` so callers fall back to defaults.
    """
    if config_path:
        provided = Path(config_path).expanduser()
        if not provided.is_absolute():
            provided = (start_dir or Path.cwd()) / provided
        provided = provided.resolve()
        if not provided.exists():
            raise ConfigError(f"Config file not found: {provided}")
        return provided

    project_root = find_project_root(start_dir)
    config_file = project_root / DEFAULT_CONFIG_NAME
    if not config_file.exists():
        return None
    return config_file


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing configuration file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data


def load_settings(config_path: Optional[str] = None, start_dir: Optional[Path] = None) -> Settings:
    """Load settings from YAML, then apply environment overrides."""
    load_dotenv()

    config_path = config_path or os.getenv("LLMB_CONFIG")
    path = resolve_config_path(config_path, start_dir)
    raw: Dict[str, Any] = _read_yaml(path) if path else {}

    try:
        settings = Settings(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    base_url = os.getenv("OLLAMA_BASE_URL")
    if base_url:
        settings.endpoints.default = base_url
    results_dir = os.getenv("LLMB_RESULTS_DIR")
    if results_dir:
        settings.storage.results_dir = results_dir

    if path:
        settings.source = str(path)
        # Relative paths in the file are anchored to the file's directory
        if not Path(settings.storage.results_dir).is_absolute() and not results_dir:
            settings.storage.results_dir = str(path.parent / settings.storage.results_dir)
        questions_file = settings.benchmark.questions_file
        if questions_file and not Path(questions_file).is_absolute():
            settings.benchmark.questions_file = str(path.parent / questions_file)
        logger.debug(f"Loaded settings from {path}")
    else:
        logger.debug("No llmb.yaml found, using built-in defaults")

    return settings


def dump_default_config() -> str:
    """Render the default configuration as YAML, used by ``llmb init``."""
    data = Settings().model_dump(exclude={"source"})
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
