"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer

logger = logging.getLogger(__name__)

T = TypeVar('T')

EXIT_CODES = {
    "ArtifactNotFoundError": 1,
    "FileNotFoundError": 1,
    "ValidationError": 2,
    "ValueError": 2,
    "ArtifactFormatError": 2,
    "EntryTooLargeError": 2,
    "RemoteCallError": 3,
    "ProbeError": 3,
    "BundleUploadError": 4,
    "SchemaApplyError": 5,
    "DeploymentVerificationError": 6,
    "BundleTooLargeError": 7,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 1: Artifact or file not found
    - 2: Validation error (bad plan, bad archive, oversized entry)
    - 3: Remote call or probe failure, or unknown error
    - 4: Bundle upload rejected
    - 5: Schema statement rejected
    - 6: Deployment could not be verified
    - 7: Bundle over the transfer size limit

    Args:
        exc: Exception to map

    Returns:
        Exit code (1-7, with 3 as fallback for unknown exceptions)
    """
    return EXIT_CODES.get(type(exc).__name__, 3)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit, after printing the error. Remote status
    text is part of the exception message and is shown unmodified.

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        from .printers import print_error
        logger.debug("Command failed", exc_info=True)
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
