"""Public detection API for feed format sniffing."""

from .detector import (
    FeedFormatDetector,
    InputType,
    detect_feed_format,
    sniff,
    sniff_file,
)

__all__ = [
    "FeedFormatDetector",
    "InputType",
    "detect_feed_format",
    "sniff",
    "sniff_file",
]
