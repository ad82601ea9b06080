"""Charset bridge between declared document encodings and Python codecs.

The element scanner reads documents as text. When an XML declaration names an
encoding other than UTF-8, the scanner hands the remaining bytes to a charset
reader, a pluggable hook that returns a text decoder or raises
:class:`CharsetError`. This module defines that hook, a default implementation
on top of the ``codecs`` registry, and the initial bytes-to-text step for byte
input.
"""

import codecs
from io import BytesIO
from typing import BinaryIO, Callable, ClassVar, Dict, Optional, Protocol

DEFAULT_ENCODING = "utf-8"


class TextReader(Protocol):
    """Minimal text source returned by a charset reader."""

    def read(self) -> str:
        ...


CharsetReader = Callable[[str, BinaryIO], TextReader]


class CharsetError(LookupError):
    """Raised when a declared encoding cannot be used to decode a document."""

    def __init__(self, label: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Unsupported document encoding: {label}")
        self.label = label


class BOMDetector:
    """Byte Order Mark (BOM) detection for Unicode encodings."""

    BOM_PATTERNS: ClassVar[Dict[bytes, str]] = {
        b"\xef\xbb\xbf": "utf-8",
        b"\xff\xfe": "utf-16-le",
        b"\xfe\xff": "utf-16-be",
        b"\xff\xfe\x00\x00": "utf-32-le",
        b"\x00\x00\xfe\xff": "utf-32-be",
    }

    def detect(self, data: bytes) -> Optional[str]:
        """Detect encoding based on BOM.

        Args:
            data: Byte data to analyze

        Returns:
            Codec name if a BOM is present, None otherwise
        """
        if not data:
            return None

        # Check longer patterns first so UTF-32 LE is not mistaken for UTF-16 LE
        for bom_bytes, encoding in sorted(
            self.BOM_PATTERNS.items(), key=lambda x: len(x[0]), reverse=True
        ):
            if data.startswith(bom_bytes):
                return encoding

        return None

    def strip(self, data: bytes) -> bytes:
        """Return data without its BOM, if any."""
        for bom_bytes in sorted(self.BOM_PATTERNS, key=len, reverse=True):
            if data.startswith(bom_bytes):
                return data[len(bom_bytes):]
        return data


# Common encoding aliases seen in feed declarations
ENCODING_ALIASES: Dict[str, str] = {
    "utf8": "utf-8",
    "utf16": "utf-16",
    "utf32": "utf-32",
    "iso-8859-1": "latin-1",
    "iso8859-1": "latin-1",
    "windows-1252": "cp1252",
    "x-sjis": "shift_jis",
    "unicode": "utf-16",
}


def normalize_label(label: str) -> str:
    """Normalize an encoding label to the codec name Python knows it by.

    Raises:
        CharsetError: If no codec is registered for the label
    """
    cleaned = label.strip().lower()
    if not cleaned:
        raise CharsetError(label, "Empty document encoding label")

    candidate = ENCODING_ALIASES.get(cleaned, cleaned)
    try:
        return codecs.lookup(candidate).name
    except LookupError as e:
        raise CharsetError(label) from e


def bom_encoding(data: bytes) -> Optional[str]:
    """Return the codec picked by a UTF-16 or UTF-32 BOM, None otherwise.

    Documents in these encodings are decoded up front, so any bytes handed
    to a charset reader later must be produced with the same codec.
    """
    encoding = BOMDetector().detect(data)
    if encoding == DEFAULT_ENCODING:
        return None
    return encoding


def is_utf8_label(label: Optional[str]) -> bool:
    """Check whether a declared label means UTF-8 (case-insensitive)."""
    return label is not None and label.strip().lower() in ("utf-8", "utf8")


def decode_document(data: bytes) -> str:
    """Decode raw document bytes to text without losing information.

    A UTF-16 or UTF-32 BOM selects that codec. Everything else is read as
    UTF-8; bytes that are not valid UTF-8 become surrogate escapes so that a
    charset reader can later recover them with :func:`encode_remainder`.

    Args:
        data: Raw document bytes

    Returns:
        Decoded text
    """
    if not data:
        return ""

    body = BOMDetector().strip(data)
    encoding = bom_encoding(data)
    if encoding is not None:
        return body.decode(encoding, errors="replace")

    return body.decode(DEFAULT_ENCODING, errors="surrogateescape")


def encode_remainder(text: str, encoding: Optional[str] = None) -> bytes:
    """Re-encode scanner text as bytes for a charset reader.

    Without an encoding the text is written as UTF-8. Surrogate escapes are
    turned back into the bytes they came from. Other lone surrogates, which
    can only come from text input, are written in their (invalid) UTF-8 form.

    Args:
        text: Text not yet consumed by the scanner
        encoding: Codec the document was originally decoded with, if not UTF-8
    """
    if encoding is not None:
        return text.encode(encoding, errors="surrogatepass")

    try:
        return text.encode(DEFAULT_ENCODING, errors="surrogateescape")
    except UnicodeEncodeError:
        return text.encode(DEFAULT_ENCODING, errors="surrogatepass")


def default_charset_reader(label: str, source: BinaryIO) -> TextReader:
    """Build a text decoder for a declared document encoding.

    If the bytes already form valid UTF-8 the declaration is wrong and the
    document is read as UTF-8, which avoids decoding it twice. NUL bytes rule
    this out, since they only occur in UTF-16 and UTF-32 data.

    Args:
        label: Declared encoding label (lowercased by the scanner)
        source: Remaining document bytes

    Returns:
        Stream reader yielding decoded text

    Raises:
        CharsetError: If the label names no known codec
    """
    codec_name = normalize_label(label)
    buffer = source.read()

    reader_factory = codecs.getreader(codec_name)
    if b"\x00" not in buffer:
        try:
            buffer.decode(DEFAULT_ENCODING)
        except UnicodeDecodeError:
            pass
        else:
            reader_factory = codecs.getreader(DEFAULT_ENCODING)

    return reader_factory(BytesIO(buffer), errors="replace")
