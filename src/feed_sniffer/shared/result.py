"""Result objects and diagnostic types for feed format sniffing.

This module defines the format tag produced by classification and the rich
result object returned by the sniffing API.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional


class FeedFormat(str, Enum):
    """Structural family of a syndication document.

    Values are the canonical lowercase tokens shared across the ingestion
    pipeline, so members compare equal to their plain string form.
    """

    JSON = "json"
    RSS = "rss"
    ATOM = "atom"
    RDF = "rdf"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


# Local root element names mapped to their feed family
ROOT_ELEMENT_FORMATS: Dict[str, FeedFormat] = {
    "rss": FeedFormat.RSS,
    "feed": FeedFormat.ATOM,
    "RDF": FeedFormat.RDF,
}


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()      # Debug-level information
    INFO = auto()       # Informational messages
    WARNING = auto()    # Warnings about potential issues
    ERROR = auto()      # Error conditions that were recovered
    CRITICAL = auto()   # Failures that forced an unknown result


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")


@dataclass(frozen=True)
class StrippedCharacter:
    """A character removed by the sanitizer."""

    position: int
    code_point: int

    @property
    def label(self) -> str:
        """Unicode notation for the removed code point."""
        return f"U+{self.code_point:04X}"


@dataclass
class DetectionResult:
    """Outcome of a single classification with diagnostics.

    Attributes:
        format: Detected feed family
        stripped_characters: Characters removed before scanning
        declared_encoding: Encoding label from the XML declaration, if any
        tokens_scanned: Number of markup tokens read before stopping
        root_name: Raw name of the element that decided the format
        fast_path: Whether the JSON prefix check decided the result
        scan_error: Message of the malformation that ended the scan, if any
        diagnostics: Diagnostic entries collected during classification
        processing_time_ms: Wall time spent classifying
        correlation_id: Optional correlation ID for request tracking
    """

    format: FeedFormat = FeedFormat.UNKNOWN
    stripped_characters: List[StrippedCharacter] = field(default_factory=list)
    declared_encoding: Optional[str] = None
    tokens_scanned: int = 0
    root_name: Optional[str] = None
    fast_path: bool = False
    scan_error: Optional[str] = None
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    processing_time_ms: float = 0.0
    correlation_id: Optional[str] = None

    @property
    def recognized(self) -> bool:
        """Whether the document was assigned a known feed family."""
        return self.format is not FeedFormat.UNKNOWN

    @property
    def stripped_count(self) -> int:
        """Number of characters removed by the sanitizer."""
        return len(self.stripped_characters)

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Append a diagnostic entry tagged with this result's correlation ID."""
        self.diagnostics.append(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=component,
                details=details,
                correlation_id=self.correlation_id,
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        """Summarize the result as plain data for reporting."""
        return {
            "format": self.format.value,
            "stripped_characters": self.stripped_count,
            "declared_encoding": self.declared_encoding,
            "tokens_scanned": self.tokens_scanned,
            "root_name": self.root_name,
            "fast_path": self.fast_path,
            "scan_error": self.scan_error,
            "processing_time_ms": self.processing_time_ms,
            "diagnostics": [
                {
                    "severity": diag.severity.name,
                    "message": diag.message,
                    "component": diag.component,
                }
                for diag in self.diagnostics
            ],
        }
