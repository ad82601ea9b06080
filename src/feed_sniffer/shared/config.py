"""Configuration classes for feed format sniffing.

This module provides configuration objects for the sanitizer, the element
scanner and the public API, with validation, overrides and serialization.
"""

import codecs
import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

VALID_LOGGING_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
COMPONENT_FIELDS = ["character", "scanner", "global_"]


@dataclass
class CharacterConfig:
    """Configuration for the character sanitizer."""

    # Use the XML 1.0 boundary 0xD7FF instead of the compatible 0xDF77 bound
    strict_char_range: bool = False
    report_stripped_characters: bool = True

    def __post_init__(self) -> None:
        """Validate character configuration."""
        if not isinstance(self.strict_char_range, bool):
            raise ValueError("strict_char_range must be a boolean")
        if not isinstance(self.report_stripped_characters, bool):
            raise ValueError("report_stripped_characters must be a boolean")


@dataclass
class ScannerConfig:
    """Configuration for the element scanner."""

    default_encoding: str = "utf-8"
    enable_charset_bridge: bool = True

    def __post_init__(self) -> None:
        """Validate scanner configuration."""
        if not self.default_encoding:
            raise ValueError("default_encoding cannot be empty")
        try:
            codecs.lookup(self.default_encoding)
        except LookupError as e:
            raise ValueError(
                f"default_encoding is not a known codec: {self.default_encoding}"
            ) from e


@dataclass
class GlobalConfig:
    """Global configuration settings that apply across all components."""

    logging_level: str = "INFO"
    enable_correlation_tracking: bool = True
    max_input_size_bytes: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate global configuration."""
        if self.logging_level not in VALID_LOGGING_LEVELS:
            raise ValueError(f"logging_level must be one of {VALID_LOGGING_LEVELS}")
        if self.max_input_size_bytes is not None and self.max_input_size_bytes <= 0:
            raise ValueError("max_input_size_bytes must be > 0 or None")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class SnifferConfig:
    """Complete configuration for feed format sniffing.

    Immutable so a single instance can be shared between detectors.
    """

    character: CharacterConfig = field(default_factory=CharacterConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete configuration."""
        try:
            self.character.__post_init__()
            self.scanner.__post_init__()
            self.global_.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

    def override(self, **kwargs: Any) -> "SnifferConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Fields to override, using ``component__field`` for
                component settings

        Returns:
            New SnifferConfig instance with overrides applied

        Example:
            >>> config = SnifferConfig().override(character__strict_char_range=True)
            >>> config.character.strict_char_range
            True
        """
        nested_overrides: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                # "global_" itself ends in an underscore, so match known prefixes
                component = next(
                    (name for name in COMPONENT_FIELDS if key.startswith(f"{name}__")),
                    None,
                )
                if component is None:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {key.split('__', 1)[0]}",
                        field_name=key,
                        suggestions=COMPONENT_FIELDS,
                    )
                field_name = key[len(component) + 2:]
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                nested_overrides[key] = value

        new_fields: Dict[str, Any] = {}
        try:
            for field_name in COMPONENT_FIELDS:
                current_config = getattr(self, field_name)
                if field_name in nested_overrides:
                    new_fields[field_name] = replace(
                        current_config, **nested_overrides[field_name]
                    )
                else:
                    new_fields[field_name] = current_config
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e

        for key, value in nested_overrides.items():
            if key not in COMPONENT_FIELDS:
                new_fields[key] = value

        try:
            return replace(self, **new_fields)
        except TypeError as e:
            raise ConfigValidationError(str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            if isinstance(obj, (list, tuple, set)):
                return [_dataclass_to_dict(item) for item in obj]
            if isinstance(obj, dict):
                return {key: _dataclass_to_dict(value) for key, value in obj.items()}
            return obj

        return _dataclass_to_dict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SnifferConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected so that typos in configuration files surface
        instead of silently falling back to defaults.
        """
        components = {
            "character": CharacterConfig,
            "scanner": ScannerConfig,
            "global_": GlobalConfig,
        }

        values: Dict[str, Any] = {}
        try:
            for key, value in data.items():
                if key in components:
                    values[key] = components[key](**value)
                elif key in ("name", "description"):
                    values[key] = value
                else:
                    raise ConfigValidationError(
                        f"Unknown configuration key: {key}", field_name=key
                    )
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e

        return cls(**values)

    @classmethod
    def from_json(cls, json_str: str) -> "SnifferConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def compatible(cls) -> "SnifferConfig":
        """Preset matching the historical character range of the sniffer."""
        return cls(
            name="compatible",
            description="Legacy character range with 0xDF77 as first upper bound",
        )

    @classmethod
    def strict(cls) -> "SnifferConfig":
        """Preset enforcing the XML 1.0 character range exactly."""
        return cls(
            character=CharacterConfig(strict_char_range=True),
            name="strict",
            description="XML 1.0 character range, surrogates always stripped",
        )
