"""Tests for the incremental element scanner."""

import codecs
from io import StringIO

import pytest

from feed_sniffer.character.encoding import CharsetError, default_charset_reader
from feed_sniffer.tokenization.scanner import (
    ElementScanner,
    ScanStep,
    Token,
    TokenType,
    is_valid_name,
    split_name,
)


def _token_types(text, **kwargs):
    return [token.type for token in ElementScanner(text, **kwargs)]


def _last_step(scanner):
    step = scanner.next_token()
    while not step.exhausted:
        step = scanner.next_token()
    return step


class TestNames:
    """Test qualified name handling."""

    @pytest.mark.parametrize("name,expected", [
        ("rss", ("", "rss")),
        ("rdf:RDF", ("rdf", "RDF")),
        ("atom:feed", ("atom", "feed")),
        ("a:b:c", ("", "a:b:c")),
        (":rss", ("", ":rss")),
        ("rss:", ("", "rss:")),
    ])
    def test_split_name(self, name, expected):
        """Test prefix and local part splitting."""
        assert split_name(name) == expected

    @pytest.mark.parametrize("name", ["rss", "rdf:RDF", "_x", "a-b.c", "élément"])
    def test_valid_names(self, name):
        """Test names accepted by the scanner."""
        assert is_valid_name(name) is True

    @pytest.mark.parametrize("name", ["", "1abc", "-a", ".b"])
    def test_invalid_names(self, name):
        """Test names rejected by the scanner."""
        assert is_valid_name(name) is False


class TestScanStep:
    """Test the scan step value."""

    def test_token_step(self):
        """Test a step carrying a token."""
        step = ScanStep(token=Token(type=TokenType.COMMENT))

        assert step.exhausted is False

    def test_end_of_stream(self):
        """Test a clean end of stream."""
        step = ScanStep()

        assert step.exhausted is True
        assert step.error is None

    def test_failure(self):
        """Test a failed step."""
        step = ScanStep(error="unexpected EOF")

        assert step.exhausted is True
        assert step.error == "unexpected EOF"


class TestElementScannerTokens:
    """Test token production on well-formed input."""

    def test_simple_document(self):
        """Test tokens of a small RSS document."""
        tokens = list(ElementScanner(
            '<?xml version="1.0"?><rss version="2.0"><channel/></rss>'
        ))

        assert [token.type for token in tokens] == [
            TokenType.PROC_INST,
            TokenType.START_ELEMENT,
            TokenType.START_ELEMENT,
            TokenType.END_ELEMENT,
            TokenType.END_ELEMENT,
        ]
        assert tokens[0].name == "xml"
        assert tokens[0].data == 'version="1.0"'
        assert tokens[1].name == "rss"
        assert tokens[1].attributes == {"version": "2.0"}
        assert tokens[2].local == "channel"
        assert tokens[3].local == "channel"

    def test_prefixed_element(self):
        """Test prefix and local part on element tokens."""
        token = ElementScanner('<rdf:RDF xmlns:rdf="urn:x"/>').next_token().token

        assert token.name == "rdf:RDF"
        assert token.prefix == "rdf"
        assert token.local == "RDF"
        assert token.attributes == {"xmlns:rdf": "urn:x"}

    def test_self_closing_element(self):
        """Test that <a/> yields a start and an end token at the same offset."""
        scanner = ElementScanner("<a/>")

        start = scanner.next_token().token
        end = scanner.next_token().token

        assert start.type is TokenType.START_ELEMENT
        assert end.type is TokenType.END_ELEMENT
        assert start.offset == end.offset == 0
        assert scanner.next_token() == ScanStep()

    def test_char_data_and_whitespace(self):
        """Test text between tags."""
        tokens = list(ElementScanner("\n<a>x &amp; y</a>"))

        assert tokens[0].type is TokenType.CHAR_DATA
        assert tokens[0].data == "\n"
        assert tokens[2].data == "x &amp; y"

    def test_plain_text(self):
        """Test a document that is only text."""
        tokens = list(ElementScanner("plain text, not a feed at all"))

        assert [token.type for token in tokens] == [TokenType.CHAR_DATA]

    def test_cdata_section(self):
        """Test CDATA content is character data and not markup."""
        tokens = list(ElementScanner("<a><![CDATA[<rss>]]></a>"))

        assert tokens[1].type is TokenType.CHAR_DATA
        assert tokens[1].data == "<rss>"
        assert len(tokens) == 3

    def test_comment(self):
        """Test comments."""
        tokens = list(ElementScanner("<!-- <rss> --><feed/>"))

        assert tokens[0].type is TokenType.COMMENT
        assert tokens[0].data == " <rss> "
        assert tokens[1].local == "feed"

    def test_doctype_with_internal_subset(self):
        """Test directives with nested declarations and quotes."""
        tokens = list(ElementScanner(
            '<!DOCTYPE rss [<!ENTITY x "a>b"><!-- > -->]><rss/>'
        ))

        assert tokens[0].type is TokenType.DIRECTIVE
        assert tokens[0].data.startswith("DOCTYPE rss [")
        assert tokens[1].name == "rss"

    def test_attribute_quotes_and_entities(self):
        """Test single quotes and entity references in attribute values."""
        token = ElementScanner(
            "<link href='http://e.com/?a=1&amp;b=2' title=\"&#169; &#xA9;\"/>"
        ).next_token().token

        assert token.attributes == {
            "href": "http://e.com/?a=1&amp;b=2",
            "title": "&#169; &#xA9;",
        }

    def test_whitespace_in_tags(self):
        """Test whitespace around attributes and in end tags."""
        tokens = list(ElementScanner('<rss\n  version = "2.0"\t></rss >'))

        assert tokens[0].attributes == {"version": "2.0"}
        assert tokens[1].type is TokenType.END_ELEMENT

    def test_tokens_read(self):
        """Test token counting."""
        scanner = ElementScanner("<a><b/></a>")
        list(scanner)

        assert scanner.tokens_read == 4
        assert scanner.error is None

    def test_empty_document(self):
        """Test that empty text is an immediate clean end."""
        scanner = ElementScanner("")

        assert scanner.next_token() == ScanStep()
        assert scanner.tokens_read == 0


class TestElementScannerFailures:
    """Test that malformed markup ends the scan with an error step."""

    @pytest.mark.parametrize("text,message", [
        ("<1foo>", "expected element name"),
        ("< rss>", "expected element name"),
        ("<rss", "unexpected EOF in element"),
        ("<rss version=2.0>", "unquoted or missing attribute value"),
        ("<rss version>", "attribute name without ="),
        ('<rss a="<">', "unescaped <"),
        ('<rss a="x', "unexpected EOF in element"),
        ("<rss/ >", "expected />"),
        ("</rss>", "unexpected end element"),
        ("<!-- open", "unexpected EOF in comment"),
        ("<!-- a -- b -->", '"--" not allowed'),
        ("<![CDATA[x", "unexpected EOF in CDATA"),
        ("<![FOO[x]]>", "invalid <![ sequence"),
        ("<?xml version='1.0'", "unexpected EOF in processing instruction"),
        ("<? ?>", "expected target name"),
        ("<!DOCTYPE rss", "unexpected EOF in directive"),
        ("&nbsp;", "invalid character entity &nbsp;"),
        ("a & b", "invalid character entity"),
        ("&#x110000;", "invalid character entity"),
    ])
    def test_malformed_markup(self, text, message):
        """Test each malformation is reported, not raised."""
        scanner = ElementScanner(text)

        step = _last_step(scanner)

        assert step.error is not None
        assert message in step.error
        assert scanner.error == step.error

    def test_mismatched_end_tag(self):
        """Test that closing the wrong element fails."""
        scanner = ElementScanner("<rss><channel></rss>")

        assert scanner.next_token().token.name == "rss"
        assert scanner.next_token().token.name == "channel"
        step = scanner.next_token()

        assert step.exhausted is True
        assert "element <channel> closed by </rss>" in step.error

    def test_failure_is_sticky(self):
        """Test that later requests repeat the failure."""
        scanner = ElementScanner("<rss a=1><feed/>")

        first = scanner.next_token()
        second = scanner.next_token()

        assert first.exhausted and second.exhausted
        assert first.error == second.error

    def test_iteration_stops_at_failure(self):
        """Test that iteration ends quietly at malformed markup."""
        scanner = ElementScanner("<a>&bogus;<rss/></a>")

        assert [token.type for token in scanner] == [TokenType.START_ELEMENT]
        assert "bogus" in scanner.error

    def test_entity_in_attribute(self):
        """Test unknown entities inside attribute values."""
        step = ElementScanner('<rss title="&bogus;"/>').next_token()

        assert step.exhausted is True
        assert "&bogus;" in step.error

    def test_overlong_decimal_entity(self):
        """Test a character reference too long to convert."""
        scanner = ElementScanner("&#" + "1" * 5000 + ";<rss/>")

        step = scanner.next_token()

        assert step.exhausted is True
        assert step.error == "invalid character entity"
        assert scanner.next_token() == step

    def test_overlong_decimal_entity_in_attribute(self):
        """Test the same reference inside an attribute value."""
        step = ElementScanner('<rss title="&#' + "9" * 5000 + ';"/>').next_token()

        assert step.exhausted is True
        assert "invalid character entity" in step.error


class TestXMLDeclaration:
    """Test XML declaration handling and charset switching."""

    def test_version_1_0_accepted(self):
        """Test the supported version."""
        types = _token_types('<?xml version="1.0" standalone="yes"?><rss/>')

        assert types == [
            TokenType.PROC_INST, TokenType.START_ELEMENT, TokenType.END_ELEMENT
        ]

    def test_other_version_rejected(self):
        """Test that other versions fail the scan."""
        step = ElementScanner('<?xml version="1.1"?><rss/>').next_token()

        assert step.exhausted is True
        assert "unsupported version '1.1'" in step.error

    def test_non_xml_processing_instruction_ignored(self):
        """Test that other PIs carry no declaration semantics."""
        tokens = list(ElementScanner(
            '<?xml-stylesheet type="text/xsl" href="s.xsl"?><rss/>'
        ))

        assert tokens[0].name == "xml-stylesheet"
        assert tokens[1].name == "rss"

    @pytest.mark.parametrize("label", ["UTF-8", "utf-8", "utf8"])
    def test_utf8_declaration_does_not_switch(self, label):
        """Test that the default encoding never calls the reader."""
        calls = []

        def reader(label, source):
            calls.append(label)
            return StringIO("")

        scanner = ElementScanner(
            f'<?xml version="1.0" encoding="{label}"?><rss/>', charset_reader=reader
        )
        tokens = list(scanner)

        assert calls == []
        assert tokens[1].name == "rss"
        assert scanner.declared_encoding == label

    def test_reader_receives_lowercased_label_and_remainder(self):
        """Test the charset hook contract."""
        calls = []

        def reader(label, source):
            calls.append((label, source.read()))
            return StringIO("<feed/>")

        scanner = ElementScanner(
            '<?xml version="1.0" encoding="Windows-1252"?><rss/>', charset_reader=reader
        )
        tokens = list(scanner)

        assert calls == [("windows-1252", b"<rss/>")]
        assert tokens[1].name == "feed"
        assert scanner.declared_encoding == "Windows-1252"

    def test_surrogate_escapes_restored_for_reader(self):
        """Test that undecodable input bytes reach the reader unchanged."""
        scanner = ElementScanner(
            '<?xml version="1.0" encoding="iso-8859-1"?><rss>caf\udce9</rss>',
            charset_reader=default_charset_reader,
        )
        tokens = list(scanner)

        assert tokens[1].name == "rss"
        assert tokens[2].data == "café"
        assert scanner.error is None

    def test_reader_receives_source_codec_for_decoded_text(self):
        """Test that text decoded from UTF-16 reaches the reader as UTF-16."""
        calls = []

        def reader(label, source):
            calls.append(label)
            return codecs.getreader(label)(source)

        scanner = ElementScanner(
            '<?xml version="1.0" encoding="UTF-16"?><rss version="2.0"/>',
            charset_reader=reader,
            source_encoding="utf-16-le",
        )
        tokens = list(scanner)

        assert calls == ["utf-16-le"]
        assert tokens[1].name == "rss"
        assert tokens[1].attributes == {"version": "2.0"}
        assert scanner.declared_encoding == "UTF-16"
        assert scanner.error is None

    def test_default_reader_with_source_codec(self):
        """Test the default reader on UTF-16 remainder bytes."""
        scanner = ElementScanner(
            '<?xml version="1.0" encoding="utf-16"?><feed>caf\u00e9</feed>',
            charset_reader=default_charset_reader,
            source_encoding="utf-16-be",
        )
        tokens = list(scanner)

        assert tokens[1].name == "feed"
        assert tokens[2].data == "caf\u00e9"

    def test_no_reader_configured(self):
        """Test that a foreign encoding without a reader fails."""
        step = ElementScanner(
            '<?xml version="1.0" encoding="iso-8859-1"?><rss/>'
        ).next_token()

        assert step.exhausted is True
        assert "no charset reader" in step.error

    def test_reader_failure(self):
        """Test that a reader raising CharsetError fails the scan."""
        def reader(label, source):
            raise CharsetError(label)

        scanner = ElementScanner(
            '<?xml version="1.0" encoding="x-bogus"?><rss/>', charset_reader=reader
        )
        step = scanner.next_token()

        assert step.exhausted is True
        assert "opening charset 'x-bogus'" in step.error
        assert scanner.declared_encoding == "x-bogus"

    def test_unknown_encoding_with_default_reader(self):
        """Test the default reader rejecting an unknown label."""
        step = ElementScanner(
            '<?xml version="1.0" encoding="x-bogus"?><rss/>',
            charset_reader=default_charset_reader,
        ).next_token()

        assert step.exhausted is True
        assert "x-bogus" in step.error

    def test_custom_default_encoding(self):
        """Test that a declaration matching the default does not switch."""
        tokens = list(ElementScanner(
            '<?xml version="1.0" encoding="latin-1"?><rss/>',
            default_encoding="iso-8859-1",
        ))

        assert tokens[1].name == "rss"
