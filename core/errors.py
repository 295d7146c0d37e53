"""Domain errors used by llm-bench services."""


class LLMBError(Exception):
    """Base exception for user-facing llm-bench errors."""

    exit_code = 1


class ConfigError(LLMBError):
    """Raised when configuration cannot be located or parsed."""

    exit_code = 2


class InvalidRunRequestError(LLMBError):
    """Raised when a benchmark run is rejected before any test is issued."""

    exit_code = 2


class BenchmarkError(LLMBError):
    """Raised when a run fails unexpectedly."""

    exit_code = 1


class RunNotFoundError(LLMBError):
    """Raised when a stored benchmark run does not exist."""

    exit_code = 1


class ResultNotFoundError(LLMBError):
    """Raised when a model or question is missing from a stored run."""

    exit_code = 1
