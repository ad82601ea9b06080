"""Tokenization layer for feed format sniffing.

This module exposes the incremental element scanner used to find a document's
root element, plus performance benchmarking helpers.
"""

from .scanner import (
    ElementScanner,
    MarkupError,
    ScanStep,
    Token,
    TokenType,
    is_valid_name,
    split_name,
)

__all__ = [
    "ElementScanner",
    "MarkupError",
    "ScanStep",
    "Token",
    "TokenType",
    "is_valid_name",
    "split_name",
]
