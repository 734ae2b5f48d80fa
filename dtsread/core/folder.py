# dtsread/core/folder.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

from .channel import ChannelRecord
from .exceptions import ChannelNotFound, InvalidFolder
from .metanode import DocumentSet


@dataclass(frozen=True, slots=True)
class DTSFolder:
    """
    Decoded top-level DTS test folder.

    - meta: the documents of the folder's .dts file
    - channels: .chn file name -> ChannelRecord, ordered by file name
    """
    meta: DocumentSet = field(default_factory=DocumentSet, repr=False)
    channels: Mapping[str, ChannelRecord] = field(default_factory=dict, repr=False)
    source: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.meta, DocumentSet):
            raise InvalidFolder("DTSFolder.meta must be a DocumentSet instance.")
        if not isinstance(self.channels, Mapping):
            raise InvalidFolder("DTSFolder.channels must be a mapping (e.g., dict).")

        for key in self.channels:
            if not isinstance(key, str) or not key.strip():
                raise InvalidFolder("DTSFolder.channels keys must be non-empty strings.")

        normalized: dict[str, ChannelRecord] = {}
        for key in sorted(self.channels):
            rec = self.channels[key]
            if not isinstance(rec, ChannelRecord):
                raise InvalidFolder("DTSFolder.channels values must be ChannelRecord instances.")
            normalized[key] = rec

        object.__setattr__(self, "channels", normalized)

    # ---- dict-like API ----
    def __len__(self) -> int:
        return len(self.channels)

    def __iter__(self) -> Iterator[str]:
        return iter(self.channels)

    def __contains__(self, name: object) -> bool:
        return name in self.channels

    def keys(self) -> Iterable[str]:
        return self.channels.keys()

    def items(self) -> Iterable[tuple[str, ChannelRecord]]:
        return self.channels.items()

    def values(self) -> Iterable[ChannelRecord]:
        return self.channels.values()

    def __getitem__(self, name: str) -> ChannelRecord:
        try:
            return self.channels[name]
        except KeyError as e:
            raise ChannelNotFound(name) from e

    def get(self, name: str, default: ChannelRecord | None = None) -> ChannelRecord | None:
        return self.channels.get(name, default)
