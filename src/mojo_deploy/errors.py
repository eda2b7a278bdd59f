"""
Error classes for artifact reassembly and remote deployment.

Two families: reassembly errors are raised while rebuilding a model artifact
from its fragments, deployment errors while shipping bundles and schema to
the remote execution engine. Remote status text is carried unmodified on
``status_string`` so operators see what the engine actually said.
"""
from __future__ import annotations

from typing import Optional


class ReassemblyError(Exception):
    """Base class for errors raised while reassembling an artifact."""

    def __init__(self, message: str, artifact: str):
        super().__init__(message)
        self.artifact = artifact


class ArtifactNotFoundError(ReassemblyError):
    """
    Artifact exists neither as a whole resource nor as numbered fragments.

    Also raised at deploy time when a resource named in the plan cannot be
    opened locally.
    """

    def __init__(self, artifact: str):
        super().__init__(
            f"Artifact {artifact} doesn't exist whole or in fragments", artifact
        )


class EntryTooLargeError(ReassemblyError):
    """An archive entry declares a size above the addressable limit."""

    def __init__(self, artifact: str, entry: str, size: int, limit: int):
        super().__init__(
            f"Entry {entry} in {artifact} is too large: {size} bytes (limit {limit})",
            artifact,
        )
        self.entry = entry
        self.size = size
        self.limit = limit


class ArtifactFormatError(ReassemblyError):
    """The concatenated fragments are not a readable archive."""

    def __init__(self, artifact: str, reason: str):
        super().__init__(f"Artifact {artifact} is not a valid archive: {reason}", artifact)
        self.reason = reason


class DeploymentError(Exception):
    """Base class for errors raised during remote deployment."""

    def __init__(self, message: str, status_string: Optional[str] = None):
        super().__init__(message)
        self.status_string = status_string


class RemoteCallError(DeploymentError):
    """
    The remote execution client itself failed.

    Raised for transport problems, timeouts and HTTP-level errors. The
    client's own exception is chained as ``__cause__``.
    """
    pass


class ProbeError(DeploymentError):
    """Probe failed in a way that is not the known "not found" answer (strict mode only)."""
    pass


class BundleUploadError(DeploymentError):
    """An ``@UpdateClasses`` call returned a non-success status."""

    def __init__(self, bundle_id: str, status_string: Optional[str]):
        super().__init__(
            f"Attempt to execute UpdateClasses for {bundle_id} failed: {status_string}",
            status_string,
        )
        self.bundle_id = bundle_id


class SchemaApplyError(DeploymentError):
    """A schema statement failed for a reason other than "already exists"."""

    def __init__(self, statement: str, status_string: Optional[str]):
        super().__init__(f"Attempt to execute '{statement}' failed: {status_string}", status_string)
        self.statement = statement


class DeploymentVerificationError(DeploymentError):
    """Every step succeeded but the final probe still does not find the schema."""
    pass


class BundleTooLargeError(DeploymentError):
    """A serialized bundle exceeds the maximum transfer size."""

    def __init__(self, bundle_id: str, size: int, limit: int):
        super().__init__(f"Bundle {bundle_id} is {size} bytes, over the {limit} byte limit")
        self.bundle_id = bundle_id
        self.size = size
        self.limit = limit


__all__ = [
    "ReassemblyError",
    "ArtifactNotFoundError",
    "EntryTooLargeError",
    "ArtifactFormatError",
    "DeploymentError",
    "RemoteCallError",
    "ProbeError",
    "BundleUploadError",
    "SchemaApplyError",
    "DeploymentVerificationError",
    "BundleTooLargeError",
]
