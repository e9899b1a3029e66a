"""
Logging configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import get_args

from .base import LogFormat, LogLevel


@dataclass
class LoggingConfig:
    """
    How the client logs.

    ``log_requests`` / ``log_responses`` emit one DEBUG record per attempt
    and per response. Cache hits, misses and revalidations are only logged
    with ``log_cache``. Authorization headers are masked unless
    ``redact_auth`` is turned off.
    """

    level: LogLevel = "INFO"
    format: LogFormat = "text"
    log_file: Path | None = None
    include_timestamp: bool = True

    log_requests: bool = True
    log_responses: bool = True
    log_cache: bool = False

    redact_auth: bool = True

    def __post_init__(self):
        if self.level not in get_args(LogLevel):
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {get_args(LogLevel)}")
        if self.format not in get_args(LogFormat):
            raise ValueError(f"Invalid log format: {self.format}. Must be one of {get_args(LogFormat)}")
        if isinstance(self.log_file, str):
            self.log_file = Path(self.log_file).expanduser()


__all__ = ["LoggingConfig"]
