"""Tests for result objects and diagnostic types."""

import pytest

from feed_sniffer.shared.result import (
    ROOT_ELEMENT_FORMATS,
    DetectionResult,
    DiagnosticEntry,
    DiagnosticSeverity,
    FeedFormat,
    StrippedCharacter,
)


class TestFeedFormat:
    """Test the feed format tag."""

    def test_interop_values(self):
        """Test the lowercase tokens shared with the ingestion pipeline."""
        assert [fmt.value for fmt in FeedFormat] == [
            "json", "rss", "atom", "rdf", "unknown"
        ]

    def test_compares_equal_to_string(self):
        """Test the str mixin."""
        assert FeedFormat.ATOM == "atom"
        assert str(FeedFormat.RDF) == "rdf"
        assert FeedFormat("rss") is FeedFormat.RSS

    def test_root_element_mapping(self):
        """Test the local root names that decide a format."""
        assert ROOT_ELEMENT_FORMATS == {
            "rss": FeedFormat.RSS,
            "feed": FeedFormat.ATOM,
            "RDF": FeedFormat.RDF,
        }


class TestDiagnosticEntry:
    """Test diagnostic entry validation."""

    def test_valid_entry(self):
        """Test creating a diagnostic entry."""
        entry = DiagnosticEntry(
            severity=DiagnosticSeverity.WARNING,
            message="Scan stopped",
            component="element_scanner",
        )

        assert entry.details is None
        assert entry.timestamp > 0

    def test_empty_message_rejected(self):
        """Test that messages are required."""
        with pytest.raises(ValueError, match="message cannot be empty"):
            DiagnosticEntry(DiagnosticSeverity.INFO, "", "api_detector")

    def test_empty_component_rejected(self):
        """Test that components are required."""
        with pytest.raises(ValueError, match="component cannot be empty"):
            DiagnosticEntry(DiagnosticSeverity.INFO, "message", "")


class TestStrippedCharacter:
    """Test stripped character records."""

    def test_label(self):
        """Test Unicode notation of the code point."""
        assert StrippedCharacter(position=3, code_point=0x0).label == "U+0000"
        assert StrippedCharacter(position=0, code_point=0xFFFE).label == "U+FFFE"
        assert StrippedCharacter(position=0, code_point=0x1F).label == "U+001F"


class TestDetectionResult:
    """Test the detection result object."""

    def test_defaults(self):
        """Test an empty result is an unknown document."""
        result = DetectionResult()

        assert result.format is FeedFormat.UNKNOWN
        assert result.recognized is False
        assert result.stripped_count == 0
        assert result.diagnostics == []

    def test_recognized(self):
        """Test the recognized flag."""
        assert DetectionResult(format=FeedFormat.JSON).recognized is True

    def test_add_diagnostic_uses_correlation_id(self):
        """Test diagnostics inherit the result's correlation ID."""
        result = DetectionResult(correlation_id="req-1")
        result.add_diagnostic(
            DiagnosticSeverity.INFO, "Stripped 1 invalid XML characters",
            "character_sanitizer", details={"code_points": ["U+0000"]}
        )

        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].correlation_id == "req-1"
        assert result.diagnostics[0].details == {"code_points": ["U+0000"]}

    def test_to_dict(self):
        """Test plain data summary."""
        result = DetectionResult(
            format=FeedFormat.RSS,
            stripped_characters=[StrippedCharacter(position=1, code_point=0)],
            root_name="rss",
            tokens_scanned=2,
        )
        result.add_diagnostic(DiagnosticSeverity.INFO, "note", "test")

        data = result.to_dict()

        assert data["format"] == "rss"
        assert data["stripped_characters"] == 1
        assert data["root_name"] == "rss"
        assert data["tokens_scanned"] == 2
        assert data["diagnostics"] == [
            {"severity": "INFO", "message": "note", "component": "test"}
        ]
