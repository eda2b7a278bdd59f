"""
Idempotent schema deployment.

The coordinator drives one deployment attempt through a small state machine::

    ABSENT --probe success--> PRESENT (no-op)
    ABSENT --probe fails--> SPLITTING -> BUNDLING -> UPLOADING -> SCHEMA_APPLYING -> PRESENT
    any state --unrecoverable error--> FAILED

No lock spans processes, so idempotency rests on two rules: probe before
acting, and treat "object name already exists" from a schema statement as
another writer having finished first. Several processes deploying at once may
duplicate upload work, but the remote schema converges to one definition.
Within a process a lock makes sure only one thread runs the upload sequence.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .bundles import DeployableBundle, chunk_bundle, resource_path
from .chunking import is_oversized, read_window, split_stream
from .client import ClientResponse, RemoteExecutionClient
from .errors import (
    ArtifactNotFoundError,
    BundleUploadError,
    DeploymentError,
    DeploymentVerificationError,
    ProbeError,
    RemoteCallError,
    SchemaApplyError,
)
from .plan import SchemaDeploymentPlan
from .resources import ResourceLocator
from .settings import Settings, chunk_bundle_bound

logger = logging.getLogger(__name__)

__all__ = [
    "ALREADY_EXISTS_MARKER",
    "DeploymentState",
    "DeploymentResult",
    "ProbeResult",
    "DeploymentCoordinator",
]

ALREADY_EXISTS_MARKER = "object name already exists"


class DeploymentState(str, Enum):
    """States of one deployment attempt."""
    ABSENT = "absent"
    SPLITTING = "splitting"
    BUNDLING = "bundling"
    UPLOADING = "uploading"
    SCHEMA_APPLYING = "schema_applying"
    PRESENT = "present"
    FAILED = "failed"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a presence probe; ``reason`` explains an ABSENT answer."""
    present: bool
    reason: Optional[str] = None

    @property
    def state(self) -> DeploymentState:
        return DeploymentState.PRESENT if self.present else DeploymentState.ABSENT


@dataclass
class DeploymentResult:
    """What one call to :meth:`DeploymentCoordinator.deploy` did."""
    state: DeploymentState
    performed: bool = False
    uploaded_bundles: List[str] = field(default_factory=list)
    applied_statements: List[str] = field(default_factory=list)
    concurrent: bool = False


class DeploymentCoordinator:
    """
    Ships a :class:`SchemaDeploymentPlan` to the remote engine at most once.

    Args:
        client: Remote execution client
        locator: Where local code and resources are read from
        plan: What to deploy
        settings: Chunk and bundle size limits, probe strictness

    Raises:
        ValueError: If a chunk of the effective chunk size cannot fit in
            ``settings.max_bundle_size``
    """

    def __init__(self, client: RemoteExecutionClient, locator: ResourceLocator,
                 plan: SchemaDeploymentPlan, settings: Settings):
        self.client = client
        self.locator = locator
        self.plan = plan
        self.settings = settings
        self.max_chunk_size = plan.max_chunk_size or settings.max_chunk_size
        needed = chunk_bundle_bound(self.max_chunk_size)
        if settings.max_bundle_size < needed:
            raise ValueError(
                f"max_bundle_size ({settings.max_bundle_size}) cannot hold a chunk bundle of "
                f"{self.max_chunk_size} bytes for plan {plan.name}; needs at least {needed}"
            )
        self._lock = threading.Lock()
        self._state = DeploymentState.ABSENT

    @property
    def state(self) -> DeploymentState:
        """State of the last attempt; only written while holding the deployment lock."""
        return self._state

    def _transition(self, state: DeploymentState) -> None:
        logger.info(f"Deployment of {self.plan.name}: {self._state.value} -> {state.value}")
        self._state = state

    # ------------------------------------------------------------------
    # Probe
    # ------------------------------------------------------------------

    def probe(self) -> ProbeResult:
        """
        Call the plan's probe procedure and interpret the answer.

        Success means PRESENT. The exact "Procedure X was not found" text
        means ABSENT. Anything else is ambiguous: it is logged and reported
        as ABSENT, unless ``strict_probe`` is set, in which case it raises.

        Raises:
            ProbeError: On an ambiguous failure with ``strict_probe`` enabled
        """
        probe = self.plan.probe
        try:
            response = self.client.call_procedure(probe.procedure, *probe.params)
        except Exception as e:
            return self._ambiguous_probe(f"probe call failed: {e}", e)

        if response.ok:
            return ProbeResult(present=True)

        if response.status_string == probe.not_found_message:
            logger.debug(f"Probe {probe.procedure}: not found")
            return ProbeResult(present=False, reason=response.status_string)

        return self._ambiguous_probe(
            f"unexpected probe response {response.status}: {response.status_string}"
        )

    def _ambiguous_probe(self, reason: str, cause: Optional[Exception] = None) -> ProbeResult:
        if self.settings.strict_probe:
            raise ProbeError(f"Probe {self.plan.probe.procedure} failed: {reason}") from cause
        logger.error(f"Probe {self.plan.probe.procedure} {reason}; treating schema as absent")
        return ProbeResult(present=False, reason=reason)

    # ------------------------------------------------------------------
    # Deploy
    # ------------------------------------------------------------------

    def deploy(self) -> DeploymentResult:
        """
        Deploy the plan unless the probe says it is already there.

        Uses double-checked presence: probe, take the lock, probe again, act.

        Returns:
            DeploymentResult with ``performed=False`` when nothing was needed

        Raises:
            ArtifactNotFoundError: A plan resource cannot be opened locally
            BundleTooLargeError: A bundle exceeds ``max_bundle_size``
            BundleUploadError: An upload returned a non-success status
            SchemaApplyError: A statement failed for another reason than "already exists"
            DeploymentVerificationError: The final probe did not find the schema
            RemoteCallError: The client itself failed
        """
        if self.probe().present:
            with self._lock:
                self._state = DeploymentState.PRESENT
            return DeploymentResult(state=DeploymentState.PRESENT)

        with self._lock:
            if self.probe().present:
                self._state = DeploymentState.PRESENT
                return DeploymentResult(state=DeploymentState.PRESENT)

            self._state = DeploymentState.ABSENT
            try:
                return self._run()
            except Exception:
                self._transition(DeploymentState.FAILED)
                raise

    def _run(self) -> DeploymentResult:
        result = DeploymentResult(state=DeploymentState.ABSENT, performed=True)

        self._transition(DeploymentState.SPLITTING)
        chunk_bundles, small_resources = self._split_resources()

        self._transition(DeploymentState.BUNDLING)
        main_bundle = self._build_main_bundle(small_resources)

        self._transition(DeploymentState.UPLOADING)
        for bundle in chunk_bundles + [main_bundle]:
            self._upload(bundle)
            result.uploaded_bundles.append(bundle.bundle_id)

        self._transition(DeploymentState.SCHEMA_APPLYING)
        for statement in self.plan.statements:
            response = self._remote(
                f"applying '{statement.text}'", lambda: self.client.ad_hoc(statement.text)
            )
            if not response.ok:
                if response.status_string and ALREADY_EXISTS_MARKER in response.status_string:
                    logger.warning(
                        f"'{statement.text}' reports an existing object; "
                        "another writer completed deployment"
                    )
                    self._transition(DeploymentState.PRESENT)
                    result.state = DeploymentState.PRESENT
                    result.concurrent = True
                    return result
                raise SchemaApplyError(statement.text, response.status_string)
            logger.info(statement.text)
            result.applied_statements.append(statement.text)

        if not self.probe().present:
            raise DeploymentVerificationError(
                f"Deployment of {self.plan.name} finished but probe "
                f"{self.plan.probe.procedure} still fails"
            )

        self._transition(DeploymentState.PRESENT)
        result.state = DeploymentState.PRESENT
        return result

    def _split_resources(self) -> Tuple[List[DeployableBundle], List[Tuple[str, bytes]]]:
        """
        Classify plan resources and split the oversized ones.

        Returns:
            (chunk bundles in resource then chunk order, small resources as (name, bytes))
        """
        chunk_bundles: List[DeployableBundle] = []
        small: List[Tuple[str, bytes]] = []

        for name in self.plan.resources:
            full_name = resource_path(self.plan.resource_prefix, name)
            stream = self.locator.try_open(full_name)
            if stream is None:
                raise ArtifactNotFoundError(full_name)

            with stream:
                head = read_window(stream, self.max_chunk_size)
                if not is_oversized(head, self.max_chunk_size):
                    small.append((name, head))
                    continue
                chunks = split_stream(stream, self.max_chunk_size, head=head)

            logger.info(f"Resource {name} split into {len(chunks)} chunks of <= {self.max_chunk_size} bytes")
            for index, chunk in enumerate(chunks):
                chunk_bundles.append(chunk_bundle(name, self.plan.resource_prefix, index, chunk))

        return chunk_bundles, small

    def _build_main_bundle(self, small_resources: List[Tuple[str, bytes]]) -> DeployableBundle:
        bundle = DeployableBundle(self.plan.main_bundle_id)

        for name in self.plan.code_entries:
            stream = self.locator.try_open(name)
            if stream is None:
                raise ArtifactNotFoundError(name)
            with stream:
                logger.debug(f"processing {name}")
                bundle.add(name, stream.read())

        for name, content in small_resources:
            bundle.add(resource_path(self.plan.resource_prefix, name), content)

        return bundle

    def _upload(self, bundle: DeployableBundle) -> None:
        data = bundle.to_bytes(max_size=self.settings.max_bundle_size)
        logger.info(f"Calling @UpdateClasses to load {bundle.bundle_id} ({len(data)} bytes)")
        response = self._remote(
            f"uploading {bundle.bundle_id}", lambda: self.client.update_classes(data)
        )
        if not response.ok:
            raise BundleUploadError(bundle.bundle_id, response.status_string)

    @staticmethod
    def _remote(action: str, call: Callable[[], ClientResponse]) -> ClientResponse:
        """Run a client call, surfacing any client failure as RemoteCallError."""
        try:
            return call()
        except DeploymentError:
            raise
        except Exception as e:
            raise RemoteCallError(f"Remote call failed while {action}: {e}") from e
