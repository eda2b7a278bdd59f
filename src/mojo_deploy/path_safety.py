"""
Path safety utilities for mojo-deploy.

Resource names are used both as filesystem paths (when reading local
resources) and as archive entry names (when building bundles). This module
provides the shared validation that keeps them relative and inside their root.
"""
from __future__ import annotations

from pathlib import PurePosixPath


def safe_resource_name(name: str) -> str:
    """
    Validate and normalize a resource name.

    This function enforces the following safety rules:
    - No empty strings or "."
    - No absolute paths (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes (archive entries are always POSIX-style)

    Args:
        name: Resource name such as "mojoprocs/gbm_pojo_test.zip"

    Returns:
        Normalized resource name

    Raises:
        ValueError: If the name violates safety rules

    Examples:
        >>> safe_resource_name("mojoprocs/gbm_pojo_test.zip.0")
        'mojoprocs/gbm_pojo_test.zip.0'

        >>> safe_resource_name("../secrets.txt")
        ValueError: unsafe resource name: ../secrets.txt
    """
    rel = PurePosixPath(name)
    s = str(rel)
    if not s or s == ".":
        raise ValueError(f"unsafe resource name: {name}")
    if "\\" in s:
        raise ValueError(f"unsafe resource name: {name}")
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"unsafe resource name: {name}")
    return s
