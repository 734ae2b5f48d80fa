# dtsread/io/dts_reader.py
"""
Reader for .dts metadata containers.

A .dts file is several complete XML documents written back to back, usually
UTF-16LE with a leading byte order mark. The concatenation is not a valid XML
document, so the buffer is split on the encoded "<?xml" marker and each piece
is parsed on its own, with the container's BOM put back in front so the
parser resolves the encoding the same way.
"""
from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from xml.etree import ElementTree

from dtsread.core import DocumentSet, FileReadError, FormatError, MetaNode, ParseError, SchemaError
from dtsread.core.metanode import DOCUMENT_TAG


logger = logging.getLogger(__name__)

XML_MARKER = "<?xml"

BOM_UTF16_LE = b"\xff\xfe"
BOM_UTF16_BE = b"\xfe\xff"

# Top-level element expected in each document, by position.
REQUIRED_DOCUMENT_ROOTS = ("Test", "TestSetup")


def detect_encoding(buffer: bytes) -> tuple[str, bytes, bytes]:
    """
    Pick the text encoding from the first two bytes.

    Returns (encoding, bom, marker) where `bom` is the byte order mark to put
    back in front of every split document (empty for UTF-8) and `marker` is
    "<?xml" encoded the same way.
    """
    head = bytes(buffer[:2])
    if head == BOM_UTF16_LE:
        encoding, bom = "utf-16-le", BOM_UTF16_LE
    elif head == BOM_UTF16_BE:
        encoding, bom = "utf-16-be", BOM_UTF16_BE
    else:
        encoding, bom = "utf-8", b""
    return encoding, bom, XML_MARKER.encode(encoding)


def _find_all(buffer: bytes, marker: bytes) -> list[int]:
    """Offsets of non-overlapping occurrences of `marker`, left to right."""
    offsets: list[int] = []
    pos = buffer.find(marker)
    while pos >= 0:
        offsets.append(pos)
        pos = buffer.find(marker, pos + len(marker))
    return offsets


def split_documents(buffer: bytes) -> list[bytes]:
    """
    Split a .dts buffer into stand-alone XML documents.

    Document i spans from the i-th marker up to the next one (or the end of
    the buffer). Bytes before the first marker, the BOM included, are dropped
    and the BOM is prepended again to every document.
    """
    buffer = bytes(buffer)
    _, bom, marker = detect_encoding(buffer)
    offsets = _find_all(buffer, marker)
    if not offsets:
        raise FormatError("No embedded XML document found in .dts data.")

    bounds = zip(offsets, offsets[1:] + [len(buffer)])
    return [bom + buffer[start:stop] for start, stop in bounds]


def _is_element(node: ElementTree.Element) -> bool:
    # Comments and processing instructions use factory functions as their tag.
    return isinstance(node.tag, str)


def build_meta_node(element: ElementTree.Element) -> MetaNode:
    """
    Recursively convert an element into a MetaNode.

    Direct text of an element is its `text` plus the `tail` of every child
    (comments included), which keeps fragments in document order.
    """
    value: list[str] = []
    children: dict[str, list[MetaNode]] = {}

    def _add_text(text: str | None) -> None:
        if text is None:
            return
        text = text.strip()
        if text:
            value.append(text)

    _add_text(element.text)
    for child in element:
        if _is_element(child):
            children.setdefault(child.tag, []).append(build_meta_node(child))
        else:
            logger.debug("Ignoring XML node %r inside <%s>", child.tag, element.tag)
        _add_text(child.tail)

    return MetaNode(
        tag=element.tag,
        attributes=dict(element.attrib),
        value=value,
        children=children,
    )


def parse_document(buffer: bytes) -> MetaNode:
    """
    Parse one XML document held in memory.

    Returns a document-level node whose only child is the root element, so
    `node["Test"]` works the same for every document of a .dts file.
    """
    builder = ElementTree.TreeBuilder(insert_comments=True, insert_pis=True)
    parser = ElementTree.XMLParser(target=builder)
    try:
        parser.feed(buffer)
        root = parser.close()
    except ElementTree.ParseError as e:
        raise ParseError(f"Malformed XML document: {e}") from e
    except (LookupError, ValueError) as e:
        # unknown or unsupported encoding named in the XML declaration
        raise ParseError(f"Unreadable XML document encoding: {e}") from e

    node = build_meta_node(root)
    return MetaNode(tag=DOCUMENT_TAG, children={node.tag: [node]})


def validate_document_set(docs: DocumentSet) -> DocumentSet:
    """
    Check the top-level layout of a .dts file.

    Exactly two documents: the first holding a single <Test> element, the
    second a single <TestSetup> element. Nothing else is checked.
    """
    if len(docs) != len(REQUIRED_DOCUMENT_ROOTS):
        raise SchemaError(
            f"Expected {len(REQUIRED_DOCUMENT_ROOTS)} XML documents in the .dts file, "
            f"received {len(docs)}."
        )

    for index, (doc, tag) in enumerate(zip(docs, REQUIRED_DOCUMENT_ROOTS)):
        if list(doc.children) != [tag]:
            raise SchemaError(
                f"Expected a single <{tag}> node in XML document {index} of the .dts file, "
                f"found {list(doc.children)}."
            )
    return docs


def read_dts(buffer: bytes, *, validate: bool = True, source: str | None = None) -> DocumentSet:
    """Decode a .dts buffer into a DocumentSet."""
    encoding, _, _ = detect_encoding(buffer)
    pieces = split_documents(buffer)
    logger.debug("Found %d XML documents (%s) in %s", len(pieces), encoding, source or "<buffer>")

    docs = DocumentSet(
        documents=[parse_document(piece) for piece in pieces],
        encoding=encoding,
        source=source,
    )
    if validate:
        validate_document_set(docs)
    return docs


def read_dts_file(path: str | PathLike, *, validate: bool = True) -> DocumentSet:
    """Read and decode a .dts file from disk."""
    path = Path(path)
    try:
        buffer = path.read_bytes()
    except OSError as e:
        raise FileReadError(f"Unable to read .dts file '{path}': {e}") from e
    return read_dts(buffer, validate=validate, source=str(path))
