"""
Deployable bundles.

A bundle is one JAR-style ZIP archive sent to the remote engine in a single
``@UpdateClasses`` call. Archives are written deterministically (fixed entry
timestamps, entries in the given order, a fixed manifest) so identical inputs
give byte-identical uploads.
"""
from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .chunking import fragment_name
from .errors import BundleTooLargeError
from .path_safety import safe_resource_name

__all__ = [
    "MANIFEST_PATH",
    "MANIFEST_CONTENT",
    "BundleEntry",
    "DeployableBundle",
    "chunk_bundle",
    "chunk_bundle_id",
    "resource_path",
    "entry_paths",
]

MANIFEST_PATH = "META-INF/MANIFEST.MF"
MANIFEST_CONTENT = b"Manifest-Version: 1.0\r\n\r\n"

# Earliest timestamp a ZIP header can represent
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def resource_path(prefix: str, name: str) -> str:
    """Entry path of resource ``name`` inside a bundle."""
    if not prefix:
        return safe_resource_name(name)
    return safe_resource_name(f"{prefix.strip('/')}/{name}")


def chunk_bundle_id(name: str, index: int) -> str:
    """Bundle id for chunk ``index`` of resource ``name``."""
    return f"{fragment_name(name, index)}.jar"


@dataclass(frozen=True)
class BundleEntry:
    """A single file inside a bundle."""
    path: str
    content: bytes

    def __post_init__(self) -> None:
        safe_resource_name(self.path)
        if self.path == MANIFEST_PATH:
            raise ValueError(f"{MANIFEST_PATH} is written by the bundle itself")


@dataclass
class DeployableBundle:
    """
    Named package of resource entries uploaded in one call.

    Entries keep insertion order; paths must be unique.
    """
    bundle_id: str
    entries: List[BundleEntry] = field(default_factory=list)

    def add(self, path: str, content: bytes) -> None:
        if any(e.path == path for e in self.entries):
            raise ValueError(f"Duplicate entry {path} in bundle {self.bundle_id}")
        self.entries.append(BundleEntry(path, content))

    @property
    def paths(self) -> List[str]:
        return [e.path for e in self.entries]

    @property
    def raw_size(self) -> int:
        return sum(len(e.content) for e in self.entries)

    def to_bytes(self, max_size: Optional[int] = None) -> bytes:
        """
        Serialize to a deterministic JAR archive.

        Args:
            max_size: Maximum serialized size in bytes, if enforced

        Raises:
            BundleTooLargeError: If the archive exceeds ``max_size``
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
            _write_entry(zf, MANIFEST_PATH, MANIFEST_CONTENT)
            for entry in self.entries:
                _write_entry(zf, entry.path, entry.content)
        data = buffer.getvalue()

        if max_size is not None and len(data) > max_size:
            raise BundleTooLargeError(self.bundle_id, len(data), max_size)
        return data


def _write_entry(zf: zipfile.ZipFile, path: str, content: bytes) -> None:
    info = zipfile.ZipInfo(path, date_time=_FIXED_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    zf.writestr(info, content)


def chunk_bundle(name: str, prefix: str, index: int, chunk: bytes) -> DeployableBundle:
    """Single-entry bundle carrying chunk ``index`` of resource ``name``."""
    bundle = DeployableBundle(chunk_bundle_id(name, index))
    bundle.add(resource_path(prefix, fragment_name(name, index)), chunk)
    return bundle


def entry_paths(data: bytes) -> Tuple[str, ...]:
    """Entry names of a serialized bundle, in archive order (diagnostics)."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return tuple(zf.namelist())
