"""Character sanitizer removing code points illegal in XML documents.

Documents fetched from uncontrolled sources often decode to characters that a
strict tokenizer rejects outright. The sanitizer drops those characters so that
scanning can always progress to the root element, and reports every drop to an
observer.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Pattern, Tuple

from feed_sniffer.shared.config import CharacterConfig
from feed_sniffer.shared.logging import get_logger
from feed_sniffer.shared.result import StrippedCharacter

# Historical upper bound of the first multi-character range. Kept for
# compatibility with existing classification results; see STRICT_BMP_UPPER.
COMPATIBLE_BMP_UPPER = 0xDF77
# XML 1.0 upper bound, just below the surrogate block
STRICT_BMP_UPPER = 0xD7FF

BMP_LOWER = 0x0020
PRIVATE_USE_START = 0xE000
PRIVATE_USE_END = 0xFFFD
SUPPLEMENTARY_START = 0x10000
SUPPLEMENTARY_END = 0x10FFFF
ALLOWED_CONTROL_CHARS = (0x0009, 0x000A, 0x000D)

StripObserver = Callable[[int], None]


def character_ranges(strict: bool = False) -> List[Tuple[int, int]]:
    """Inclusive legal code point ranges.

    Args:
        strict: Use the XML 1.0 bound for the first multi-character range

    Returns:
        List of (start, end) pairs
    """
    bmp_upper = STRICT_BMP_UPPER if strict else COMPATIBLE_BMP_UPPER
    return [
        (0x0009, 0x0009),  # Tab
        (0x000A, 0x000A),  # Line Feed
        (0x000D, 0x000D),  # Carriage Return
        (BMP_LOWER, bmp_upper),
        (PRIVATE_USE_START, PRIVATE_USE_END),
        (SUPPLEMENTARY_START, SUPPLEMENTARY_END),
    ]


def is_in_character_range(code_point: int, strict: bool = False) -> bool:
    """Check whether a code point may appear in an XML document."""
    return any(start <= code_point <= end for start, end in character_ranges(strict))


def _illegal_character_pattern(strict: bool) -> Pattern[str]:
    """Compile a pattern matching any single character outside the legal ranges."""
    legal = "".join(
        re.escape(chr(start)) if start == end
        else f"{re.escape(chr(start))}-{re.escape(chr(end))}"
        for start, end in character_ranges(strict)
    )
    return re.compile(f"[^{legal}]")


_ILLEGAL_COMPATIBLE = _illegal_character_pattern(strict=False)
_ILLEGAL_STRICT = _illegal_character_pattern(strict=True)


@dataclass
class SanitizeResult:
    """Sanitized text and the characters removed from it.

    Attributes:
        text: Text containing only legal characters
        stripped: Removed characters in input order
    """
    text: str
    stripped: List[StrippedCharacter] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether any character was removed."""
        return bool(self.stripped)


class CharacterSanitizer:
    """Drops characters outside the XML character range."""

    def __init__(
        self,
        config: Optional[CharacterConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize sanitizer.

        Args:
            config: Character configuration (uses default if None)
            correlation_id: Optional correlation ID for log records
        """
        self.config = config or CharacterConfig()
        self.logger = get_logger(__name__, correlation_id, "character_sanitizer")
        self._pattern = (
            _ILLEGAL_STRICT if self.config.strict_char_range else _ILLEGAL_COMPATIBLE
        )

    def sanitize(
        self,
        text: str,
        on_strip: Optional[StripObserver] = None
    ) -> SanitizeResult:
        """Remove illegal characters from text.

        Args:
            text: Decoded document text
            on_strip: Observer called with each removed code point. Defaults
                to a debug log record when reporting is enabled.

        Returns:
            SanitizeResult with cleaned text and removal records
        """
        if not text:
            return SanitizeResult(text="")

        # Fast path: nothing to remove
        if self._pattern.search(text) is None:
            return SanitizeResult(text=text)

        observer = self._resolve_observer(on_strip)
        pieces: List[str] = []
        stripped: List[StrippedCharacter] = []
        last_end = 0

        for match in self._pattern.finditer(text):
            position = match.start()
            code_point = ord(match.group())
            pieces.append(text[last_end:position])
            last_end = match.end()
            stripped.append(StrippedCharacter(position=position, code_point=code_point))
            if observer is not None:
                self._notify(observer, code_point)

        pieces.append(text[last_end:])
        return SanitizeResult(text="".join(pieces), stripped=stripped)

    def _resolve_observer(
        self, on_strip: Optional[StripObserver]
    ) -> Optional[StripObserver]:
        if on_strip is not None:
            return on_strip
        if not self.config.report_stripped_characters:
            return None
        if not self.logger.is_debug_enabled():
            return None
        return self.logger.stripped_character_sink()

    def _notify(self, observer: StripObserver, code_point: int) -> None:
        # Delivery is best effort; a failing sink never fails sanitizing.
        try:
            observer(code_point)
        except Exception:
            self.logger.debug(
                "Stripped character observer failed",
                extra={"code_point": code_point},
                exc_info=True,
            )


def strip_invalid_xml_characters(
    text: str,
    on_strip: Optional[StripObserver] = None,
    strict: bool = False
) -> str:
    """Remove characters outside the XML character range.

    Args:
        text: Decoded document text
        on_strip: Observer called with each removed code point
        strict: Use the XML 1.0 range instead of the compatible one

    Returns:
        Text with illegal characters removed

    Examples:
        >>> strip_invalid_xml_characters("<rss>\\x00</rss>")
        '<rss></rss>'
    """
    sanitizer = CharacterSanitizer(CharacterConfig(strict_char_range=strict))
    return sanitizer.sanitize(text, on_strip).text
