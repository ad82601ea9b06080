"""Incremental element scanner for shallow inspection of XML documents.

This module implements a pull-based, namespace-unaware tokenizer. Each call to
:meth:`ElementScanner.next_token` reads exactly one token from the document and
reports malformed markup as a failed :class:`ScanStep` instead of raising, so
callers can stop at the first interesting element and treat any failure as the
end of the stream.
"""

import codecs
import re
import string
import unicodedata
from dataclasses import dataclass, field
from enum import Enum, auto
from io import BytesIO
from typing import Dict, Iterator, List, Optional, Tuple

from feed_sniffer.character.encoding import (
    DEFAULT_ENCODING,
    CharsetReader,
    encode_remainder,
    is_utf8_label,
)
from feed_sniffer.shared.logging import get_logger

# Characters that may continue an element name before validation
NAME_BYTES = frozenset(string.ascii_letters + string.digits + "_:.-")
WHITESPACE = " \t\r\n"
PREDEFINED_ENTITIES = frozenset(["amp", "lt", "gt", "apos", "quot"])
MAX_CODE_POINT = 0x10FFFF

CDATA_OPEN = "<![CDATA["
CDATA_CLOSE = "]]>"
COMMENT_OPEN = "<!--"
COMMENT_CLOSE = "-->"

_ENTITY_PATTERN = re.compile(
    r"&(?:#([0-9]+)|#x([0-9a-fA-F]+)|([A-Za-z_:][A-Za-z0-9_.:\-]*));"
)
_PSEUDO_ATTRIBUTE_PATTERN = re.compile(
    r"(?<![\w.:-])(version|encoding|standalone)\s*=\s*(['\"])(.*?)\2", re.DOTALL
)


class TokenType(Enum):
    """Token kinds produced by the element scanner."""

    START_ELEMENT = auto()   # <name attr="...">, also emitted for <name/>
    END_ELEMENT = auto()     # </name>, also emitted right after <name/>
    CHAR_DATA = auto()       # Text between tags and CDATA sections
    COMMENT = auto()         # <!-- ... -->
    PROC_INST = auto()       # <?target ...?>
    DIRECTIVE = auto()       # <!DOCTYPE ...> and other declarations


class MarkupError(Exception):
    """Malformed markup found while scanning.

    Never escapes :meth:`ElementScanner.next_token`; it is converted into a
    failed :class:`ScanStep` there.
    """

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.offset = offset


@dataclass(frozen=True)
class Token:
    """A single markup token.

    Attributes:
        type: Token kind
        name: Raw element name or processing instruction target
        prefix: Namespace prefix of an element name, empty if none
        local: Local part of an element name
        data: Text content for character data, comments, PIs and directives
        attributes: Attributes of a start element, keyed by raw name
        offset: Offset of the token in the buffer being scanned
    """

    type: TokenType
    name: str = ""
    prefix: str = ""
    local: str = ""
    data: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    offset: int = 0


@dataclass(frozen=True)
class ScanStep:
    """Outcome of one scanner request.

    Either carries a token, or is exhausted: the document ended cleanly
    (``error`` is None) or scanning stopped at malformed markup.
    """

    token: Optional[Token] = None
    error: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        """Whether no further tokens will be produced."""
        return self.token is None


def split_name(name: str) -> Tuple[str, str]:
    """Split a qualified name into prefix and local part.

    Names with exactly one colon and text on both sides are split; anything
    else is treated as a local name without prefix.

    >>> split_name("rdf:RDF")
    ('rdf', 'RDF')
    >>> split_name("rss")
    ('', 'rss')
    """
    if name.count(":") == 1:
        prefix, _, local = name.partition(":")
        if prefix and local:
            return prefix, local
    return "", name


def _is_name_start(char: str) -> bool:
    return char in "_:" or char.isalpha()


def _is_name_part(char: str) -> bool:
    if char in "_:.-·" or char.isalnum():
        return True
    return unicodedata.category(char).startswith("M")


def is_valid_name(name: str) -> bool:
    """Check an element, attribute or PI target name."""
    if not name or not _is_name_start(name[0]):
        return False
    return all(_is_name_part(char) for char in name[1:])


class ElementScanner:
    """Pull tokenizer tracking only element nesting.

    The scanner keeps a stack of open element names so that mismatched end
    tags are detected, and hands the rest of the document to a charset reader
    when an XML declaration names a different encoding.
    """

    def __init__(
        self,
        text: str,
        charset_reader: Optional[CharsetReader] = None,
        default_encoding: str = DEFAULT_ENCODING,
        correlation_id: Optional[str] = None,
        source_encoding: Optional[str] = None
    ) -> None:
        """Initialize the scanner.

        Args:
            text: Sanitized document text
            charset_reader: Hook decoding documents with a declared encoding;
                without one, any non-default declaration ends the scan
            default_encoding: Encoding assumed for the text as given
            correlation_id: Optional correlation ID for log records
            source_encoding: Codec the text was decoded from when a byte order
                mark fixed it; a declaration then reaches the charset reader
                under this label with bytes in this codec
        """
        self.charset_reader = charset_reader
        self.default_encoding = default_encoding
        self.source_encoding = source_encoding
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "element_scanner")

        self._text = text
        self._pos = 0
        self._stack: List[str] = []
        self._pending_end: Optional[Tuple[str, int]] = None
        self._done = False

        self.error: Optional[str] = None
        self.declared_encoding: Optional[str] = None
        self.tokens_read = 0

    def next_token(self) -> ScanStep:
        """Read the next token.

        Returns:
            ScanStep carrying the token, or an exhausted step at end of
            stream or after malformed markup
        """
        if self._done:
            return ScanStep(error=self.error)

        try:
            token = self._read_token()
        except MarkupError as e:
            self._done = True
            self.error = str(e)
            self.logger.debug(
                "Scan stopped at malformed markup",
                extra={
                    "error": self.error,
                    "offset": e.offset,
                    "tokens_read": self.tokens_read,
                }
            )
            return ScanStep(error=self.error)

        if token is None:
            self._done = True
            return ScanStep()

        self.tokens_read += 1
        return ScanStep(token=token)

    def __iter__(self) -> Iterator[Token]:
        while True:
            step = self.next_token()
            if step.exhausted:
                return
            yield step.token

    def _read_token(self) -> Optional[Token]:
        if self._pending_end is not None:
            name, offset = self._pending_end
            self._pending_end = None
            self._stack.pop()
            return self._element_token(TokenType.END_ELEMENT, name, offset)

        if self._pos >= len(self._text):
            return None

        text = self._text
        start = self._pos
        if text[start] != "<":
            return self._read_char_data()
        if text.startswith("<?", start):
            return self._read_proc_inst()
        if text.startswith(COMMENT_OPEN, start):
            return self._read_comment()
        if text.startswith("<![", start):
            return self._read_cdata()
        if text.startswith("<!", start):
            return self._read_directive()
        if text.startswith("</", start):
            return self._read_end_element()
        return self._read_start_element()

    def _element_token(
        self,
        token_type: TokenType,
        name: str,
        offset: int,
        attributes: Optional[Dict[str, str]] = None
    ) -> Token:
        prefix, local = split_name(name)
        return Token(
            type=token_type,
            name=name,
            prefix=prefix,
            local=local,
            attributes=attributes or {},
            offset=offset,
        )

    def _read_char_data(self) -> Token:
        start = self._pos
        end = self._text.find("<", start)
        if end == -1:
            end = len(self._text)
        data = self._text[start:end]
        self._check_entities(data, start)
        self._pos = end
        return Token(type=TokenType.CHAR_DATA, data=data, offset=start)

    def _read_cdata(self) -> Token:
        start = self._pos
        if not self._text.startswith(CDATA_OPEN, start):
            raise MarkupError("invalid <![ sequence", start)
        end = self._text.find(CDATA_CLOSE, start + len(CDATA_OPEN))
        if end == -1:
            raise MarkupError("unexpected EOF in CDATA section", start)
        self._pos = end + len(CDATA_CLOSE)
        return Token(
            type=TokenType.CHAR_DATA,
            data=self._text[start + len(CDATA_OPEN):end],
            offset=start,
        )

    def _read_comment(self) -> Token:
        start = self._pos
        end = self._text.find(COMMENT_CLOSE, start + len(COMMENT_OPEN))
        if end == -1:
            raise MarkupError("unexpected EOF in comment", start)
        data = self._text[start + len(COMMENT_OPEN):end]
        if "--" in data:
            raise MarkupError('invalid sequence "--" not allowed in comments', start)
        self._pos = end + len(COMMENT_CLOSE)
        return Token(type=TokenType.COMMENT, data=data, offset=start)

    def _read_directive(self) -> Token:
        start = self._pos
        text = self._text
        i = start + 2
        depth = 0
        quote: Optional[str] = None

        while i < len(text):
            char = text[i]
            if quote is not None:
                if char == quote:
                    quote = None
            elif text.startswith(COMMENT_OPEN, i):
                comment_end = text.find(COMMENT_CLOSE, i + len(COMMENT_OPEN))
                if comment_end == -1:
                    break
                i = comment_end + len(COMMENT_CLOSE)
                continue
            elif char in "'\"":
                quote = char
            elif char == "<":
                depth += 1
            elif char == ">":
                if depth == 0:
                    self._pos = i + 1
                    return Token(
                        type=TokenType.DIRECTIVE, data=text[start + 2:i], offset=start
                    )
                depth -= 1
            i += 1

        raise MarkupError("unexpected EOF in directive", start)

    def _read_proc_inst(self) -> Token:
        start = self._pos
        end = self._text.find("?>", start + 2)
        if end == -1:
            raise MarkupError("unexpected EOF in processing instruction", start)

        target, name_end = self._read_name(start + 2)
        if target is None:
            raise MarkupError("expected target name after <?", start)

        data = self._text[name_end:end].lstrip(WHITESPACE)
        self._pos = end + 2

        if target == "xml":
            self._apply_declaration(data, start)

        return Token(type=TokenType.PROC_INST, name=target, data=data, offset=start)

    def _apply_declaration(self, content: str, offset: int) -> None:
        params = {
            match.group(1): match.group(3)
            for match in _PSEUDO_ATTRIBUTE_PATTERN.finditer(content)
        }

        version = params.get("version", "")
        if version and version != "1.0":
            raise MarkupError(
                f"unsupported version {version!r}; only version 1.0 is supported",
                offset,
            )

        encoding = params.get("encoding", "")
        if not encoding:
            return
        self.declared_encoding = encoding
        if not self._is_default_encoding(encoding):
            self._switch_charset(self.source_encoding or encoding.lower(), offset)

    def _is_default_encoding(self, label: str) -> bool:
        if is_utf8_label(label) and is_utf8_label(self.default_encoding):
            return True
        try:
            return codecs.lookup(label).name == codecs.lookup(self.default_encoding).name
        except LookupError:
            return False

    def _switch_charset(self, label: str, offset: int) -> None:
        if self.charset_reader is None:
            raise MarkupError(
                f"encoding {label!r} declared but no charset reader is configured",
                offset,
            )

        remainder = encode_remainder(self._text[self._pos:], self.source_encoding)
        try:
            reader = self.charset_reader(label, BytesIO(remainder))
            decoded = reader.read()
        except (LookupError, ValueError) as e:
            raise MarkupError(f"opening charset {label!r}: {e}", offset) from e

        self.logger.debug(
            "Switched document charset",
            extra={"encoding": label, "remaining_chars": len(decoded)}
        )
        self._text = decoded
        self._pos = 0

    def _read_end_element(self) -> Token:
        start = self._pos
        name, i = self._read_name(start + 2)
        if name is None:
            raise MarkupError("expected element name after </", start)

        i = self._skip_whitespace(i)
        if i >= len(self._text) or self._text[i] != ">":
            raise MarkupError(f"invalid characters between </{name} and >", start)

        if not self._stack:
            raise MarkupError(f"unexpected end element </{name}>", start)
        if self._stack[-1] != name:
            raise MarkupError(
                f"element <{self._stack[-1]}> closed by </{name}>", start
            )

        self._stack.pop()
        self._pos = i + 1
        return self._element_token(TokenType.END_ELEMENT, name, start)

    def _read_start_element(self) -> Token:
        start = self._pos
        text = self._text
        name, i = self._read_name(start + 1)
        if name is None:
            raise MarkupError("expected element name after <", start)

        attributes: Dict[str, str] = {}
        self_closing = False

        while True:
            i = self._skip_whitespace(i)
            if i >= len(text):
                raise MarkupError(f"unexpected EOF in element <{name}>", start)

            char = text[i]
            if char == ">":
                i += 1
                break
            if char == "/":
                if not text.startswith("/>", i):
                    raise MarkupError(f"expected /> in element <{name}>", start)
                self_closing = True
                i += 2
                break

            attr_name, i = self._read_name(i)
            if attr_name is None:
                raise MarkupError(f"expected attribute name in element <{name}>", start)
            i = self._skip_whitespace(i)
            if i >= len(text) or text[i] != "=":
                raise MarkupError(f"attribute name without = in element <{name}>", start)
            i = self._skip_whitespace(i + 1)
            if i >= len(text) or text[i] not in "'\"":
                raise MarkupError(
                    f"unquoted or missing attribute value in element <{name}>", start
                )

            quote = text[i]
            value_end = text.find(quote, i + 1)
            if value_end == -1:
                raise MarkupError(f"unexpected EOF in element <{name}>", start)
            value = text[i + 1:value_end]
            if "<" in value:
                raise MarkupError("unescaped < inside quoted string", start)
            self._check_entities(value, i + 1)
            attributes[attr_name] = value
            i = value_end + 1

        self._pos = i
        self._stack.append(name)
        if self_closing:
            self._pending_end = (name, start)
        return self._element_token(TokenType.START_ELEMENT, name, start, attributes)

    def _read_name(self, index: int) -> Tuple[Optional[str], int]:
        """Read a name starting at index.

        Returns:
            Tuple of (name or None if invalid, index after the name)
        """
        text = self._text
        end = index
        while end < len(text) and (text[end] in NAME_BYTES or ord(text[end]) >= 0x80):
            end += 1
        name = text[index:end]
        if not is_valid_name(name):
            return None, end
        return name, end

    def _skip_whitespace(self, index: int) -> int:
        while index < len(self._text) and self._text[index] in WHITESPACE:
            index += 1
        return index

    def _check_entities(self, data: str, offset: int) -> None:
        index = data.find("&")
        while index != -1:
            match = _ENTITY_PATTERN.match(data, index)
            if match is None:
                raise MarkupError("invalid character entity", offset + index)

            decimal, hexadecimal, named = match.groups()
            if named is not None:
                if named not in PREDEFINED_ENTITIES:
                    raise MarkupError(
                        f"invalid character entity &{named};", offset + index
                    )
            else:
                try:
                    code_point = (
                        int(decimal) if decimal is not None else int(hexadecimal, 16)
                    )
                except ValueError as e:
                    # int() refuses very long digit strings
                    raise MarkupError(
                        "invalid character entity", offset + index
                    ) from e
                if code_point > MAX_CODE_POINT:
                    raise MarkupError(
                        f"invalid character entity {match.group()}", offset + index
                    )
            index = data.find("&", match.end())
