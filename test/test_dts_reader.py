import logging
from xml.etree import ElementTree

import pytest

from conftest import TEST_SETUP_XML, TEST_XML, make_dts
from dtsread.core import (
    DocumentSet,
    FileReadError,
    FormatError,
    MetaNode,
    ParseError,
    SchemaError,
)
from dtsread.io.dts_reader import (
    build_meta_node,
    detect_encoding,
    parse_document,
    read_dts,
    read_dts_file,
    split_documents,
    validate_document_set,
)


def _doc(root_tag: str) -> MetaNode:
    return MetaNode(children={root_tag: [MetaNode(tag=root_tag)]})


class TestDetectEncoding:
    def test_utf16_le(self):
        encoding, bom, marker = detect_encoding(b"\xff\xfe<\x00")
        assert encoding == "utf-16-le"
        assert bom == b"\xff\xfe"
        assert marker == "<?xml".encode("utf-16-le")

    def test_utf16_be(self):
        encoding, bom, marker = detect_encoding(b"\xfe\xff\x00<")
        assert encoding == "utf-16-be"
        assert bom == b"\xfe\xff"
        assert marker == b"\x00<\x00?\x00x\x00m\x00l"

    @pytest.mark.parametrize("head", [b"<?", b"", b"\xff", b"\xef\xbb\xbf<"])
    def test_defaults_to_utf8_without_bom(self, head):
        assert detect_encoding(head) == ("utf-8", b"", b"<?xml")


class TestSplitDocuments:
    def test_two_ascii_documents(self):
        first = b'<?xml version="1.0"?><root>a</root>\n'
        second = b'<?xml version="1.0"?><root>b</root>'
        data = first + second

        pieces = split_documents(data)

        assert len(pieces) == 2
        assert pieces[0] == first
        assert pieces[1] == second
        assert all(p.startswith(b"<?xml") for p in pieces)

    def test_leading_bytes_are_dropped(self):
        pieces = split_documents(b"junk<?xml version='1.0'?><a/>")
        assert pieces == [b"<?xml version='1.0'?><a/>"]

    def test_utf16_documents_get_bom_back(self, dts_bytes):
        pieces = split_documents(dts_bytes)

        assert len(pieces) == 2
        marker = b"\xff\xfe" + "<?xml".encode("utf-16-le")
        assert all(p.startswith(marker) for p in pieces)
        # Nothing lost except the original BOM, which is repeated per piece.
        assert sum(len(p) for p in pieces) == len(dts_bytes) + 2

    def test_no_marker(self):
        with pytest.raises(FormatError):
            split_documents(b"<root/>")

    def test_marker_in_wrong_encoding_is_not_found(self):
        # UTF-16 BOM but an 8-bit marker
        with pytest.raises(FormatError):
            split_documents(b"\xff\xfe<?xml version='1.0'?><a/>")


class TestBuildMetaNode:
    def test_repeated_children_and_attributes(self):
        node = build_meta_node(ElementTree.fromstring('<A x="1"><B>hi</B><B>bye</B></A>'))

        assert node.tag == "A"
        assert dict(node.attributes) == {"x": "1"}
        assert list(node.children) == ["B"]
        assert [b.value for b in node["B"]] == [("hi",), ("bye",)]
        assert node.value == ()

    def test_text_fragments_are_trimmed_and_ordered(self):
        node = build_meta_node(ElementTree.fromstring("<A>  one <B/>\n two\n<C/>   </A>"))
        assert node.value == ("one", "two")
        assert node.text == "onetwo"

    def test_children_keep_first_seen_order(self):
        node = build_meta_node(ElementTree.fromstring("<A><Z/><Y/><Z/><X/></A>"))
        assert list(node.children) == ["Z", "Y", "X"]
        assert len(node["Z"]) == 2

    def test_nested(self):
        node = build_meta_node(
            ElementTree.fromstring('<A><B k="v"><C>deep</C></B></A>')
        )
        assert node.first("B").attributes["k"] == "v"
        assert node.first("B").first("C").text == "deep"


class TestParseDocument:
    def test_document_node_wraps_root(self):
        doc = parse_document(b'<?xml version="1.0"?><A x="1"><B>hi</B><B>bye</B></A>')

        assert list(doc.children) == ["A"]
        (root,) = doc["A"]
        assert dict(root.attributes) == {"x": "1"}
        assert [b.text for b in root["B"]] == ["hi", "bye"]

    def test_comments_and_pis_are_ignored(self, caplog):
        caplog.set_level(logging.DEBUG, logger="dtsread.io.dts_reader")
        doc = parse_document(b"<?xml version='1.0'?><A>x<!-- note -->y<?pi data?>z</A>")

        (root,) = doc["A"]
        assert root.value == ("x", "y", "z")
        assert root.children == {}
        assert "Ignoring XML node" in caplog.text

    def test_utf16_piece(self, dts_bytes):
        piece = split_documents(dts_bytes)[1]
        doc = parse_document(piece)

        setup = doc.first("TestSetup")
        assert setup.attributes["Version"] == "2"
        assert [c.text for c in setup["Channel"]] == ["accel", "load"]
        assert [c.attributes["Serial"] for c in setup["Channel"]] == ["A1", "A2"]

    @pytest.mark.parametrize(
        "data",
        [
            b"<?xml version='1.0'?><A><B></A>",
            b"<?xml version='1.0'?>",
            b"<?xml version='1.0'?><A/><B/>",
            b"<?xml version='1.0' encoding='foo-bar'?><A/>",
            b"<?xml version='1.0' encoding='shift_jis'?><A/>",
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(ParseError):
            parse_document(data)


class TestValidateDocumentSet:
    def test_valid(self):
        docs = DocumentSet([_doc("Test"), _doc("TestSetup")])
        assert validate_document_set(docs) is docs

    @pytest.mark.parametrize("count", [0, 1, 3])
    def test_wrong_document_count(self, count):
        docs = DocumentSet([_doc("Test")] * count)
        with pytest.raises(SchemaError, match="Expected 2 XML documents"):
            validate_document_set(docs)

    def test_first_document_without_test(self):
        docs = DocumentSet([_doc("Other"), _doc("TestSetup")])
        with pytest.raises(SchemaError, match="Test"):
            validate_document_set(docs)

    def test_first_document_with_extra_child(self):
        first = MetaNode(children={"Test": [MetaNode(tag="Test")], "Extra": [MetaNode(tag="Extra")]})
        with pytest.raises(SchemaError):
            validate_document_set(DocumentSet([first, _doc("TestSetup")]))

    def test_second_document_without_test_setup(self):
        docs = DocumentSet([_doc("Test"), _doc("Test")])
        with pytest.raises(SchemaError, match="TestSetup"):
            validate_document_set(docs)


class TestReadDts:
    @pytest.mark.parametrize("encoding", ["utf-16-le", "utf-16-be", "utf-8"])
    def test_all_encodings(self, encoding):
        docs = read_dts(make_dts(encoding))

        assert len(docs) == 2
        assert docs.encoding == encoding
        assert docs.test.attributes["Id"] == "T-001"
        assert docs.test.first("Name").text == "Drop test"
        assert len(docs.test_setup["Channel"]) == 2

    def test_validation_can_be_skipped(self):
        data = make_dts("utf-8", documents=(TEST_XML, TEST_XML, TEST_SETUP_XML))

        with pytest.raises(SchemaError):
            read_dts(data)
        assert len(read_dts(data, validate=False)) == 3

    def test_read_file(self, tmp_path, dts_bytes):
        path = tmp_path / "run.dts"
        path.write_bytes(dts_bytes)

        docs = read_dts_file(path)

        assert docs.source == str(path)
        assert docs.test is not None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileReadError):
            read_dts_file(tmp_path / "missing.dts")
