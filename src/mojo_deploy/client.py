"""
Remote execution client interface.

The deployment coordinator talks to the remote engine only through this
protocol, which enables dependency injection of the HTTP client in
production and an in-memory fake in tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, runtime_checkable

__all__ = [
    "SUCCESS",
    "USER_ABORT",
    "GRACEFUL_FAILURE",
    "UNEXPECTED_FAILURE",
    "CONNECTION_LOST",
    "ClientResponse",
    "RemoteExecutionClient",
]

# Status codes as reported by the engine
SUCCESS = 1
USER_ABORT = -1
GRACEFUL_FAILURE = -2
UNEXPECTED_FAILURE = -3
CONNECTION_LOST = -4


@dataclass(frozen=True)
class ClientResponse:
    """
    Response to any remote call.

    Invariants:
    - status: engine status code, ``SUCCESS`` on success
    - status_string: engine's own text, passed through unmodified
    - results: result tables as returned by the engine (may be empty)
    """
    status: int
    status_string: Optional[str] = None
    results: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


@runtime_checkable
class RemoteExecutionClient(Protocol):
    """Protocol for the three remote operations deployment relies on."""

    def call_procedure(self, name: str, *params: Any) -> ClientResponse:
        """
        Invoke a stored procedure.

        Returns:
            Engine response; a missing procedure is a non-success response
            with status text "Procedure <name> was not found"

        Raises:
            RemoteCallError: If the call could not be completed
        """
        ...

    def update_classes(self, bundle: bytes) -> ClientResponse:
        """
        Upload a bundle of classes and resources (``@UpdateClasses``).

        Raises:
            RemoteCallError: If the call could not be completed
        """
        ...

    def ad_hoc(self, statement: str) -> ClientResponse:
        """
        Run one ad-hoc statement (``@AdHoc``).

        Raises:
            RemoteCallError: If the call could not be completed
        """
        ...
