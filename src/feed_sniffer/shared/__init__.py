"""Shared utilities for feed format sniffing.

This module provides the result types, configuration objects and logging
helpers used across the character, tokenization and API layers.
"""

from .result import (
    ROOT_ELEMENT_FORMATS,
    DetectionResult,
    DiagnosticEntry,
    DiagnosticSeverity,
    FeedFormat,
    StrippedCharacter,
)
from .config import (
    CharacterConfig,
    ConfigError,
    ConfigValidationError,
    GlobalConfig,
    ScannerConfig,
    SnifferConfig,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)

__all__ = [
    "ROOT_ELEMENT_FORMATS",
    "DetectionResult",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "FeedFormat",
    "StrippedCharacter",
    "CharacterConfig",
    "ConfigError",
    "ConfigValidationError",
    "GlobalConfig",
    "ScannerConfig",
    "SnifferConfig",
    "CorrelationLogger",
    "get_logger",
]
