# dtsread/core/metanode.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Sequence

from .exceptions import InvalidMetaNode


DOCUMENT_TAG = "#document"


@dataclass(frozen=True, slots=True)
class MetaNode:
    """
    One XML element of a .dts metadata document.

    - attributes: attribute name -> string value
    - value: trimmed, non-empty text fragments in document order
    - children: child tag -> tuple of nodes (a tag may repeat)

    `value` is kept as fragments; `text` joins them with no separator, which
    is the single-string view of the element's content.
    """
    tag: str = DOCUMENT_TAG
    attributes: Mapping[str, str] = field(default_factory=dict)
    value: Sequence[str] = field(default_factory=tuple)
    children: Mapping[str, Sequence["MetaNode"]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.tag, str) or not self.tag:
            raise InvalidMetaNode("MetaNode.tag must be a non-empty string.")

        if self.attributes is None:
            attributes = {}
        elif isinstance(self.attributes, Mapping):
            attributes = dict(self.attributes)
        else:
            raise InvalidMetaNode("MetaNode.attributes must be a mapping.")

        if isinstance(self.value, str):
            raise InvalidMetaNode("MetaNode.value must be a sequence of strings, not a string.")
        value = tuple(self.value or ())
        if not all(isinstance(v, str) for v in value):
            raise InvalidMetaNode("MetaNode.value must only contain strings.")

        if self.children is None:
            raw_children = {}
        elif isinstance(self.children, Mapping):
            raw_children = self.children
        else:
            raise InvalidMetaNode("MetaNode.children must be a mapping.")

        children: dict[str, tuple[MetaNode, ...]] = {}
        for key, nodes in raw_children.items():
            nodes = tuple(nodes)
            if not all(isinstance(n, MetaNode) for n in nodes):
                raise InvalidMetaNode(f"MetaNode.children['{key}'] must only contain MetaNode instances.")
            children[key] = nodes

        object.__setattr__(self, "attributes", MappingProxyType(attributes))
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "children", MappingProxyType(children))

    @property
    def text(self) -> str:
        return "".join(self.value)

    def __getitem__(self, tag: str) -> tuple["MetaNode", ...]:
        return self.children[tag]

    def __contains__(self, tag: object) -> bool:
        return tag in self.children

    def get(self, tag: str, default: tuple["MetaNode", ...] = ()) -> tuple["MetaNode", ...]:
        return self.children.get(tag, default)

    def first(self, tag: str) -> "MetaNode | None":
        nodes = self.children.get(tag)
        return nodes[0] if nodes else None


@dataclass(frozen=True, slots=True)
class DocumentSet:
    """Ordered document-level nodes, one per XML document of a .dts file."""
    documents: Sequence[MetaNode] = field(default_factory=tuple)
    encoding: str = "utf-8"
    source: str | None = None

    def __post_init__(self) -> None:
        documents = tuple(self.documents)
        if not all(isinstance(d, MetaNode) for d in documents):
            raise InvalidMetaNode("DocumentSet.documents must only contain MetaNode instances.")
        object.__setattr__(self, "documents", documents)

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self) -> Iterator[MetaNode]:
        return iter(self.documents)

    def __getitem__(self, index: int) -> MetaNode:
        return self.documents[index]

    # Only meaningful once the set has been through validate_document_set.
    @property
    def test(self) -> MetaNode | None:
        return self.documents[0].first("Test") if self.documents else None

    @property
    def test_setup(self) -> MetaNode | None:
        return self.documents[1].first("TestSetup") if len(self.documents) > 1 else None
