"""Character processing layer for feed format sniffing.

This module provides the character sanitizer and the charset bridge used by the
element scanner to read documents that declare a non-UTF-8 encoding.
"""

from .encoding import (
    BOMDetector,
    CharsetError,
    CharsetReader,
    TextReader,
    bom_encoding,
    decode_document,
    default_charset_reader,
    encode_remainder,
    is_utf8_label,
    normalize_label,
)
from .sanitizer import (
    CharacterSanitizer,
    SanitizeResult,
    StripObserver,
    character_ranges,
    is_in_character_range,
    strip_invalid_xml_characters,
)

__all__ = [
    # Modules
    "encoding",
    "sanitizer",
    # Charset bridge
    "BOMDetector",
    "CharsetError",
    "CharsetReader",
    "TextReader",
    "bom_encoding",
    "decode_document",
    "default_charset_reader",
    "encode_remainder",
    "is_utf8_label",
    "normalize_label",
    # Sanitizer
    "CharacterSanitizer",
    "SanitizeResult",
    "StripObserver",
    "character_ranges",
    "is_in_character_range",
    "strip_invalid_xml_characters",
]
