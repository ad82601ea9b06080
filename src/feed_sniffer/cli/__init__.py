"""Command-line interface module for the feed sniffer.

This module provides CLI tools to classify feed documents on disk and to
write out their sanitized text.
"""

from .main import main

__all__ = ["main"]
