"""
Resource locators.

A resource locator turns a logical name into a readable byte stream. The same
abstraction serves both sides of the wire: the deployment coordinator reads
local resources through it at deploy time, and the artifact reassembler reads
fragments through it inside a deployed unit.

Locators have exactly one failure channel: ``try_open`` returns ``None``
whether the resource is missing, unreadable or unsafely named. Callers never
need to tell these cases apart.
"""
from __future__ import annotations

import io
import logging
import zipfile
from importlib import resources as importlib_resources
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable

from .path_safety import safe_resource_name

logger = logging.getLogger(__name__)

__all__ = [
    "ResourceLocator",
    "DirectoryResourceLocator",
    "ArchiveResourceLocator",
    "PackageResourceLocator",
]


@runtime_checkable
class ResourceLocator(Protocol):
    """Protocol for opening named binary resources."""

    def try_open(self, name: str) -> Optional[BinaryIO]:
        """
        Open a resource for reading.

        Args:
            name: Resource name (POSIX-style, relative)

        Returns:
            Open binary stream the caller must close, or None if the resource
            is missing or unreadable
        """
        ...


class DirectoryResourceLocator:
    """Resources stored as files below a root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def try_open(self, name: str) -> Optional[BinaryIO]:
        try:
            path = self.root / safe_resource_name(name)
        except ValueError as e:
            logger.debug(f"Refusing to open {name}: {e}")
            return None
        if not path.is_file():
            return None
        try:
            return open(path, "rb")
        except OSError as e:
            logger.debug(f"Could not open {path}: {e}")
            return None

    def __repr__(self) -> str:
        return f"DirectoryResourceLocator({str(self.root)!r})"


class ArchiveResourceLocator:
    """
    Resources stored inside one or more ZIP/JAR archives.

    This is the view a deployed unit has of its class path: every uploaded
    bundle contributes its entries, and a later archive shadows an earlier one
    that holds the same entry name.
    """

    def __init__(self, archives: Sequence[Union[bytes, str, Path]]):
        self._archives: List[bytes] = []
        self._index: Dict[str, int] = {}

        for archive in archives:
            data = archive if isinstance(archive, bytes) else Path(archive).read_bytes()
            position = len(self._archives)
            self._archives.append(data)
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                for info in zf.infolist():
                    if not info.is_dir():
                        self._index[info.filename] = position

    def names(self) -> List[str]:
        """All resource names visible through this locator."""
        return sorted(self._index)

    def try_open(self, name: str) -> Optional[BinaryIO]:
        position = self._index.get(name)
        if position is None:
            return None
        try:
            with zipfile.ZipFile(io.BytesIO(self._archives[position])) as zf:
                return io.BytesIO(zf.read(name))
        except (zipfile.BadZipFile, OSError) as e:
            logger.debug(f"Could not read {name} from archive {position}: {e}")
            return None


class PackageResourceLocator:
    """Resources shipped as package data of an importable package."""

    def __init__(self, package: str):
        self.package = package

    def try_open(self, name: str) -> Optional[BinaryIO]:
        try:
            resource = importlib_resources.files(self.package).joinpath(safe_resource_name(name))
            if not resource.is_file():
                return None
            return resource.open("rb")
        except (ModuleNotFoundError, OSError, ValueError) as e:
            logger.debug(f"Could not open {name} in package {self.package}: {e}")
            return None
