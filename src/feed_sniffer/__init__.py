"""Feed format sniffer.

Classifies raw syndication documents as JSON Feed, RSS, Atom, RDF or unknown
without a full parse, tolerating foreign encodings, illegal characters and
malformed markup.

Progressive API Disclosure:
- Level 1: Simple functions - detect_feed_format(), sniff(), sniff_file()
- Level 2: Configured detector - FeedFormatDetector class
- Level 3: Building blocks - CharacterSanitizer, ElementScanner, charset readers
"""

__version__ = "0.1.0"
__author__ = "Feed Sniffer Team"

# Level 1 and 2
from .api import FeedFormatDetector, detect_feed_format, sniff, sniff_file

# Level 3 building blocks
from .character import (
    CharacterSanitizer,
    CharsetError,
    CharsetReader,
    default_charset_reader,
    strip_invalid_xml_characters,
)
from .tokenization import ElementScanner

# Configuration and result objects
from .shared.config import SnifferConfig
from .shared.result import DetectionResult, FeedFormat

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple detection functions
    "detect_feed_format",
    "sniff",
    "sniff_file",

    # Level 2: Configured detector
    "FeedFormatDetector",

    # Level 3: Building blocks
    "CharacterSanitizer",
    "CharsetError",
    "CharsetReader",
    "ElementScanner",
    "default_charset_reader",
    "strip_invalid_xml_characters",

    # Results and configuration
    "DetectionResult",
    "FeedFormat",
    "SnifferConfig",
]
