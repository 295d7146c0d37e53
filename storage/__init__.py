"""Storage layer for benchmark runs."""

from .database import Database
from .repository import BenchmarkRepository

__all__ = [
    "Database",
    "BenchmarkRepository",
]
