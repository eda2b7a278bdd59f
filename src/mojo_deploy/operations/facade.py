"""
Operations Facade - Application service layer.

Provides a clean interface between CLI and the deployment core, centralizing
command orchestration, configuration, and policy decisions (such as whole-run
deployment retries) while keeping CLI commands thin and testable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..chunking import write_fragments
from ..client import RemoteExecutionClient
from ..coordinator import DeploymentCoordinator, DeploymentResult, ProbeResult
from ..errors import BundleUploadError, DeploymentVerificationError, RemoteCallError
from ..plan import SchemaDeploymentPlan
from ..reassembly import ArtifactReassembler, ReassembledArtifact
from ..resources import ResourceLocator
from ..settings import Settings

logger = logging.getLogger(__name__)

# Failures where re-running the whole deployment from the probe can help
RETRYABLE_DEPLOY_ERRORS = (RemoteCallError, BundleUploadError, DeploymentVerificationError)


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes policy decisions like retries and output verbosity.
    """
    retries: int = 0              # Extra whole-deployment attempts
    retry_wait_max_s: float = 10.0
    verbose: bool = False         # Show detailed output


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. The coordinator never retries on its own;
    re-invoking the whole deployment is the caller's policy and lives here,
    safe because every attempt starts by probing.
    """

    def __init__(self, config: OpsConfig, settings: Settings,
                 client: Optional[RemoteExecutionClient] = None):
        """
        Initialize Operations facade.

        Args:
            config: Configuration settings
            settings: Engine and size settings
            client: Remote client (None for local-only operations)
        """
        self.cfg = config
        self.settings = settings
        self.client = client

    def _coordinator(self, plan: SchemaDeploymentPlan, locator: ResourceLocator) -> DeploymentCoordinator:
        if self.client is None:
            raise ValueError("Remote client required for deployment operations")
        return DeploymentCoordinator(self.client, locator, plan, self.settings)

    def probe(self, plan: SchemaDeploymentPlan, locator: ResourceLocator) -> ProbeResult:
        """Check whether the plan's schema is already deployed."""
        return self._coordinator(plan, locator).probe()

    def deploy(self, plan: SchemaDeploymentPlan, locator: ResourceLocator) -> DeploymentResult:
        """
        Deploy the plan, re-running the whole deployment on retryable failures.

        Returns:
            Result of the last (successful) attempt
        """
        coordinator = self._coordinator(plan, locator)
        for attempt in Retrying(
            stop=stop_after_attempt(self.cfg.retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=self.cfg.retry_wait_max_s),
            retry=retry_if_exception_type(RETRYABLE_DEPLOY_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return coordinator.deploy()

    def split(self, path: str, *, out_dir: Optional[str] = None,
              max_chunk_size: Optional[int] = None) -> List[Path]:
        """Split a local file into numbered fragments."""
        return write_fragments(path, max_chunk_size or self.settings.max_chunk_size, out_dir)

    def inspect(self, name: str, locator: ResourceLocator) -> ReassembledArtifact:
        """Reassemble an artifact locally, as a deployed unit would."""
        return ArtifactReassembler(locator).reassemble(name)
