"""
Artifact reassembly.

Rebuilds a model artifact (a ZIP archive such as an H2O MOJO) from whatever
form it was deployed in: either a single resource, or numbered fragments
``name.0``, ``name.1``, ... produced by :mod:`mojo_deploy.chunking` because the
whole artifact was too big for one upload. The fragment count is never
stored anywhere; the first missing index ends the sequence.
"""
from __future__ import annotations

import io
import logging
import shutil
import zipfile
import zlib
from collections.abc import Mapping
from contextlib import ExitStack
from dataclasses import dataclass
from types import MappingProxyType
from typing import BinaryIO, Dict, Iterator, List

from .chunking import fragment_name
from .errors import ArtifactFormatError, ArtifactNotFoundError, EntryTooLargeError
from .resources import ResourceLocator

logger = logging.getLogger(__name__)

__all__ = ["ArtifactFragment", "ReassembledArtifact", "ArtifactReassembler", "MAX_ENTRY_SIZE"]

# Largest entry a signed 32-bit length can describe
MAX_ENTRY_SIZE = 2**31 - 1


@dataclass(frozen=True)
class ArtifactFragment:
    """One open piece of a logical artifact, in discovery order."""
    index: int
    stream: BinaryIO


class ReassembledArtifact(Mapping):
    """
    Immutable snapshot of a reassembled artifact: entry name to bytes.

    Holds no reference to the fragment streams it was read from.
    """

    def __init__(self, name: str, entries: Dict[str, bytes], fragment_count: int):
        self.name = name
        self.fragment_count = fragment_count
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, key: str) -> bytes:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total_size(self) -> int:
        return sum(len(v) for v in self._entries.values())

    def __repr__(self) -> str:
        return (
            f"ReassembledArtifact(name={self.name!r}, entries={len(self)}, "
            f"fragments={self.fragment_count})"
        )


class ArtifactReassembler:
    """
    Loads an artifact through a resource locator, joining fragments if needed.

    Reassembly is not cached here; callers that want to keep a loaded model
    around own that decision (see :class:`mojo_deploy.scoring.LazyModel`).
    """

    def __init__(self, locator: ResourceLocator, *, max_entry_size: int = MAX_ENTRY_SIZE):
        self.locator = locator
        self.max_entry_size = max_entry_size

    def reassemble(self, logical_name: str) -> ReassembledArtifact:
        """
        Reassemble ``logical_name`` into an in-memory entry map.

        The whole resource wins if it exists; fragments are only probed when
        it does not.

        Raises:
            ArtifactNotFoundError: Neither the whole resource nor fragment 0 exists
            EntryTooLargeError: An entry declares a size above ``max_entry_size``
            ArtifactFormatError: The joined bytes are not a readable archive
        """
        with ExitStack() as stack:
            fragments = self._open_fragments(logical_name, stack)
            buffer = io.BytesIO()
            for fragment in fragments:
                shutil.copyfileobj(fragment.stream, buffer)

        logger.debug(
            f"Joined {len(fragments)} fragment(s) of {logical_name} into {buffer.tell()} bytes"
        )
        buffer.seek(0)
        entries = self._read_entries(logical_name, buffer)

        logger.info(f"Reassembled {logical_name}: {len(entries)} entries from {len(fragments)} fragment(s)")
        return ReassembledArtifact(logical_name, entries, len(fragments))

    def _open_fragments(self, logical_name: str, stack: ExitStack) -> List[ArtifactFragment]:
        """Open the whole resource, or every numbered fragment, registering each for close."""
        whole = self.locator.try_open(logical_name)
        if whole is not None:
            stack.enter_context(whole)
            return [ArtifactFragment(0, whole)]

        fragments: List[ArtifactFragment] = []
        while True:
            stream = self.locator.try_open(fragment_name(logical_name, len(fragments)))
            if stream is None:
                break
            stack.enter_context(stream)
            fragments.append(ArtifactFragment(len(fragments), stream))

        if not fragments:
            raise ArtifactNotFoundError(logical_name)
        return fragments

    def _read_entries(self, logical_name: str, buffer: BinaryIO) -> Dict[str, bytes]:
        content: Dict[str, bytes] = {}
        try:
            with zipfile.ZipFile(buffer) as zf:
                for info in zf.infolist():
                    if info.is_dir():
                        continue
                    if info.file_size > self.max_entry_size:
                        raise EntryTooLargeError(
                            logical_name, info.filename, info.file_size, self.max_entry_size
                        )
                    if info.filename in content:
                        raise ArtifactFormatError(logical_name, f"duplicate entry {info.filename}")
                    content[info.filename] = zf.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise ArtifactFormatError(logical_name, str(e)) from e
        return content
