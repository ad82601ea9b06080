"""Feed format detection API with progressive disclosure.

This module provides the public entry points, from the one-call
:func:`detect_feed_format` to the reusable :class:`FeedFormatDetector`. All of
them follow the never-fail philosophy: any input yields a format, possibly
``FeedFormat.UNKNOWN``, and problems are reported as diagnostics.
"""

import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, TextIO, Union

from feed_sniffer.character import (
    CharacterSanitizer,
    CharsetReader,
    StripObserver,
    bom_encoding,
    decode_document,
    default_charset_reader,
)
from feed_sniffer.shared import (
    ROOT_ELEMENT_FORMATS,
    DetectionResult,
    DiagnosticSeverity,
    FeedFormat,
    SnifferConfig,
    get_logger,
)
from feed_sniffer.tokenization import ElementScanner, TokenType

# Type definitions for input data
InputType = Union[str, bytes, bytearray, memoryview, BinaryIO, TextIO]

MS_PER_SECOND = 1000
JSON_PREFIX = "{"
# Unicode White_Space characters skipped before the JSON check. Information
# separators U+001C to U+001F do not count, unlike in str.strip().
JSON_WHITESPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000"
)
# Stripped code points listed in a single diagnostic entry
MAX_REPORTED_CODE_POINTS = 20


def detect_feed_format(
    data: InputType,
    charset_reader: Optional[CharsetReader] = None,
    on_strip: Optional[StripObserver] = None,
    config: Optional[SnifferConfig] = None,
    correlation_id: Optional[str] = None
) -> FeedFormat:
    """Guess the feed format of a raw document.

    Args:
        data: Document as text, bytes or a readable file-like object
        charset_reader: Hook decoding documents that declare a non-UTF-8
            encoding (defaults to the ``codecs`` based reader)
        on_strip: Observer called with each illegal code point removed
        config: Sniffer configuration (defaults to the compatible preset)
        correlation_id: Optional correlation ID for request tracking

    Returns:
        The detected FeedFormat, ``FeedFormat.UNKNOWN`` when undecidable

    Examples:
        >>> detect_feed_format('{"version": "https://jsonfeed.org/version/1"}')
        <FeedFormat.JSON: 'json'>
        >>> detect_feed_format('<?xml version="1.0"?><rss version="2.0"/>')
        <FeedFormat.RSS: 'rss'>
        >>> detect_feed_format("plain text, not a feed at all")
        <FeedFormat.UNKNOWN: 'unknown'>
    """
    return sniff(
        data,
        charset_reader=charset_reader,
        on_strip=on_strip,
        config=config,
        correlation_id=correlation_id,
    ).format


def sniff(
    data: InputType,
    charset_reader: Optional[CharsetReader] = None,
    on_strip: Optional[StripObserver] = None,
    config: Optional[SnifferConfig] = None,
    correlation_id: Optional[str] = None
) -> DetectionResult:
    """Classify a document and report how the decision was reached.

    Args:
        data: Document as text, bytes or a readable file-like object
        charset_reader: Hook decoding documents that declare a non-UTF-8
            encoding (defaults to the ``codecs`` based reader)
        on_strip: Observer called with each illegal code point removed
        config: Sniffer configuration (defaults to the compatible preset)
        correlation_id: Optional correlation ID for request tracking

    Returns:
        DetectionResult with the format and scanning diagnostics

    Examples:
        >>> result = sniff(b"<rdf:RDF xmlns:rdf='...'><item/></rdf:RDF>")
        >>> result.format, result.root_name
        (<FeedFormat.RDF: 'rdf'>, 'rdf:RDF')
    """
    start_time = time.time()
    config = config or SnifferConfig()
    if not config.global_.enable_correlation_tracking:
        correlation_id = None
    logger = get_logger(__name__, correlation_id, "sniff")
    result = DetectionResult(correlation_id=correlation_id)

    try:
        content = _read_content(data)
        size_limit = config.global_.max_input_size_bytes
        if size_limit is not None and _content_size(content) > size_limit:
            result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                f"Input exceeds {size_limit} bytes, not scanned",
                "api_detector",
                details={"size": _content_size(content)}
            )
        else:
            if isinstance(content, bytes):
                text = decode_document(content)
                source_encoding = bom_encoding(content)
            else:
                text = content
                source_encoding = None
            _classify_text(
                text, result, charset_reader, on_strip, config, source_encoding
            )

    except Exception as e:
        # Never-fail guarantee: report and fall back to unknown
        logger.exception("Feed format detection failed")
        result.format = FeedFormat.UNKNOWN
        result.add_diagnostic(
            DiagnosticSeverity.CRITICAL,
            f"Feed format detection failed: {e}",
            "api_detector"
        )

    result.processing_time_ms = (time.time() - start_time) * MS_PER_SECOND
    logger.debug(
        "Feed format detected",
        extra={
            "format": result.format.value,
            "tokens_scanned": result.tokens_scanned,
            "stripped_characters": result.stripped_count,
            "processing_time_ms": result.processing_time_ms,
        }
    )
    return result


def sniff_file(
    file_path: Union[str, Path],
    charset_reader: Optional[CharsetReader] = None,
    on_strip: Optional[StripObserver] = None,
    config: Optional[SnifferConfig] = None,
    correlation_id: Optional[str] = None
) -> DetectionResult:
    """Classify a document stored on disk.

    The file is read in binary mode so that byte order marks and encoding
    declarations are honored. Missing or unreadable files produce an unknown
    result with a critical diagnostic.

    Args:
        file_path: Path to the document
        charset_reader: Hook decoding documents with a declared encoding
        on_strip: Observer called with each illegal code point removed
        config: Sniffer configuration
        correlation_id: Optional correlation ID for request tracking

    Returns:
        DetectionResult for the file's content
    """
    path_obj = Path(file_path)
    logger = get_logger(__name__, correlation_id, "sniff_file")

    error_message = None
    if not path_obj.exists():
        error_message = f"File not found: {path_obj}"
    elif not path_obj.is_file():
        error_message = f"Path is not a file: {path_obj}"
    else:
        try:
            raw_data = path_obj.read_bytes()
        except OSError as e:
            error_message = f"Unable to read file {path_obj}: {e}"

    if error_message:
        logger.warning(error_message, extra={"file_path": str(path_obj)})
        result = DetectionResult(correlation_id=correlation_id)
        result.add_diagnostic(
            DiagnosticSeverity.CRITICAL,
            error_message,
            "file_detector",
            details={"file_path": str(path_obj)}
        )
        return result

    return sniff(
        raw_data,
        charset_reader=charset_reader,
        on_strip=on_strip,
        config=config,
        correlation_id=correlation_id,
    )


def _read_content(data: InputType) -> Union[str, bytes]:
    if isinstance(data, (str, bytes)):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if hasattr(data, "read"):
        content = data.read()
        if isinstance(content, (str, bytes)):
            return content
        raise TypeError(f"read() returned unsupported type {type(content).__name__}")
    raise TypeError(f"Unsupported input type {type(data).__name__}")


def _content_size(content: Union[str, bytes]) -> int:
    if isinstance(content, bytes):
        return len(content)
    return len(content.encode("utf-8", errors="surrogatepass"))


def _classify_text(
    text: str,
    result: DetectionResult,
    charset_reader: Optional[CharsetReader],
    on_strip: Optional[StripObserver],
    config: SnifferConfig,
    source_encoding: Optional[str] = None
) -> None:
    """Run the JSON check, sanitizer and scanner loop, filling in result."""
    if text.lstrip(JSON_WHITESPACE).startswith(JSON_PREFIX):
        result.format = FeedFormat.JSON
        result.fast_path = True
        return

    sanitizer = CharacterSanitizer(config.character, result.correlation_id)
    sanitized = sanitizer.sanitize(text, on_strip)
    result.stripped_characters = sanitized.stripped
    if sanitized.changed:
        result.add_diagnostic(
            DiagnosticSeverity.INFO,
            f"Stripped {len(sanitized.stripped)} invalid XML characters",
            "character_sanitizer",
            details={
                "code_points": [
                    char.label for char in sanitized.stripped[:MAX_REPORTED_CODE_POINTS]
                ]
            }
        )

    reader = None
    if config.scanner.enable_charset_bridge:
        reader = charset_reader or default_charset_reader

    scanner = ElementScanner(
        sanitized.text,
        charset_reader=reader,
        default_encoding=config.scanner.default_encoding,
        correlation_id=result.correlation_id,
        source_encoding=source_encoding,
    )

    while True:
        step = scanner.next_token()
        if step.exhausted:
            if step.error is not None:
                result.scan_error = step.error
                result.add_diagnostic(
                    DiagnosticSeverity.WARNING,
                    f"Scan stopped before a root element was found: {step.error}",
                    "element_scanner"
                )
            break

        token = step.token
        if token.type is not TokenType.START_ELEMENT:
            continue
        feed_format = ROOT_ELEMENT_FORMATS.get(token.local)
        if feed_format is not None:
            result.format = feed_format
            result.root_name = token.name
            break

    result.tokens_scanned = scanner.tokens_read
    result.declared_encoding = scanner.declared_encoding


class FeedFormatDetector:
    """Reusable detector with fixed configuration and usage statistics.

    Attributes:
        config: Current sniffer configuration
        charset_reader: Hook used for declared encodings
        on_strip: Observer for stripped characters
        correlation_id: Correlation ID for request tracking

    Examples:
        >>> detector = FeedFormatDetector(config=SnifferConfig.strict())
        >>> detector.detect('<feed xmlns="http://www.w3.org/2005/Atom"/>')
        <FeedFormat.ATOM: 'atom'>
        >>> detector.statistics["total_detections"]
        1
    """

    def __init__(
        self,
        config: Optional[SnifferConfig] = None,
        charset_reader: Optional[CharsetReader] = None,
        on_strip: Optional[StripObserver] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize detector.

        Args:
            config: Sniffer configuration (defaults to the compatible preset)
            charset_reader: Hook decoding documents with a declared encoding
            on_strip: Observer called with each illegal code point removed
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or SnifferConfig.compatible()
        self.charset_reader = charset_reader
        self.on_strip = on_strip
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "feed_format_detector")
        self.reset_statistics()

    def detect(self, data: InputType) -> FeedFormat:
        """Guess the feed format of a document."""
        return self.sniff(data).format

    def sniff(
        self,
        data: InputType,
        correlation_id_override: Optional[str] = None
    ) -> DetectionResult:
        """Classify a document and record the outcome in the statistics."""
        result = sniff(
            data,
            charset_reader=self.charset_reader,
            on_strip=self.on_strip,
            config=self.config,
            correlation_id=correlation_id_override or self.correlation_id,
        )
        self._record(result)
        return result

    def sniff_file(self, file_path: Union[str, Path]) -> DetectionResult:
        """Classify a document stored on disk."""
        result = sniff_file(
            file_path,
            charset_reader=self.charset_reader,
            on_strip=self.on_strip,
            config=self.config,
            correlation_id=self.correlation_id,
        )
        self._record(result)
        return result

    def reconfigure(
        self,
        config: Optional[SnifferConfig] = None,
        charset_reader: Optional[CharsetReader] = None,
        on_strip: Optional[StripObserver] = None
    ) -> None:
        """Replace configuration or hooks; omitted arguments stay unchanged."""
        if config is not None:
            self.config = config
        if charset_reader is not None:
            self.charset_reader = charset_reader
        if on_strip is not None:
            self.on_strip = on_strip

        self.logger.info(
            "Detector reconfigured",
            extra={
                "config_updated": config is not None,
                "charset_reader_updated": charset_reader is not None,
                "observer_updated": on_strip is not None,
            }
        )

    def _record(self, result: DetectionResult) -> None:
        self._detection_count += 1
        self._total_processing_time += result.processing_time_ms
        self._format_counts[result.format.value] += 1

        self.logger.info(
            "Detection completed",
            extra={
                "format": result.format.value,
                "processing_time_ms": result.processing_time_ms,
                "total_detections": self._detection_count,
            }
        )

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get detector usage statistics."""
        recognized = self._detection_count - self._format_counts[FeedFormat.UNKNOWN.value]
        return {
            "total_detections": self._detection_count,
            "format_counts": dict(self._format_counts),
            "recognition_rate": (
                recognized / self._detection_count
                if self._detection_count > 0 else 0.0
            ),
            "total_processing_time_ms": self._total_processing_time,
            "average_processing_time_ms": (
                self._total_processing_time / self._detection_count
                if self._detection_count > 0 else 0.0
            ),
            "correlation_id": self.correlation_id,
        }

    def reset_statistics(self) -> None:
        """Reset detector usage statistics."""
        self._detection_count = 0
        self._total_processing_time = 0.0
        self._format_counts: Dict[str, int] = {fmt.value: 0 for fmt in FeedFormat}
