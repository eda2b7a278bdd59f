"""
Split-on-write side of the fragment contract.

A resource that reaches ``max_chunk_size`` bytes is split into windows and
published as ``name.0``, ``name.1``, ... The artifact reassembler consumes
exactly this naming convention to join the windows back together.

Boundary rule: the chunk list always ends with a chunk shorter than the
window. When the resource size is an exact multiple of the window, the last
chunk is empty. A resource of exactly ``max_chunk_size`` bytes therefore
splits into two chunks of ``max_chunk_size`` and 0 bytes, while one byte less
is not split at all.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

logger = logging.getLogger(__name__)

__all__ = [
    "fragment_name",
    "read_window",
    "is_oversized",
    "split_stream",
    "write_fragments",
]


def fragment_name(name: str, index: int) -> str:
    """Name of fragment ``index`` of resource ``name``."""
    if index < 0:
        raise ValueError(f"fragment index must be non-negative, got {index}")
    return f"{name}.{index}"


def read_window(stream: BinaryIO, size: int) -> bytes:
    """
    Read up to ``size`` bytes, stopping early only at end of stream.

    Raw streams may return short reads; this keeps reading until the window
    is full or the stream is exhausted.
    """
    parts = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def is_oversized(head: bytes, max_chunk_size: int) -> bool:
    """True if a resource whose first window is ``head`` has to be split."""
    return len(head) >= max_chunk_size


def split_stream(stream: BinaryIO, max_chunk_size: int, *, head: Optional[bytes] = None) -> List[bytes]:
    """
    Split a stream into ``max_chunk_size`` windows until exhaustion.

    Args:
        stream: Binary stream positioned at the start of the resource, or just
            after ``head`` if the first window was already read
        max_chunk_size: Window size in bytes
        head: First window, if the caller already read it to size the resource

    Returns:
        Ordered chunks; every chunk but the last is exactly ``max_chunk_size``
        bytes and the last one is shorter (possibly empty)
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    chunks: List[bytes] = []
    window = head if head is not None else read_window(stream, max_chunk_size)
    while True:
        chunks.append(window)
        if len(window) < max_chunk_size:
            return chunks
        window = read_window(stream, max_chunk_size)


def write_fragments(path: Union[str, Path], max_chunk_size: int,
                    out_dir: Union[str, Path, None] = None) -> List[Path]:
    """
    Split a local file into numbered fragment files.

    Writes ``<name>.0``, ``<name>.1``, ... next to the source file (or into
    ``out_dir``). Files below ``max_chunk_size`` are left alone and an empty
    list is returned.

    Returns:
        Paths of the fragment files written, in order
    """
    path = Path(path)
    target_dir = Path(out_dir) if out_dir is not None else path.parent
    target_dir.mkdir(parents=True, exist_ok=True)

    with open(path, "rb") as stream:
        head = read_window(stream, max_chunk_size)
        if not is_oversized(head, max_chunk_size):
            logger.info(f"{path.name} is {len(head)} bytes, below {max_chunk_size}; not splitting")
            return []
        chunks = split_stream(stream, max_chunk_size, head=head)

    written = []
    for index, chunk in enumerate(chunks):
        fragment_path = target_dir / fragment_name(path.name, index)
        fragment_path.write_bytes(chunk)
        written.append(fragment_path)

    logger.info(f"Split {path.name} into {len(written)} fragments in {target_dir}")
    return written
