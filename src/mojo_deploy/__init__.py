"""
mojo-deploy: ship split model artifacts and schema to a remote engine, once.

The two halves of the fragment contract are :mod:`mojo_deploy.chunking`
(split on write) and :mod:`mojo_deploy.reassembly` (join on read);
:mod:`mojo_deploy.coordinator` drives idempotent deployment.
"""
from .coordinator import DeploymentCoordinator, DeploymentResult, DeploymentState
from .plan import SchemaDeploymentPlan
from .reassembly import ArtifactReassembler, ReassembledArtifact

__version__ = "0.1.0"

__all__ = [
    "ArtifactReassembler",
    "ReassembledArtifact",
    "DeploymentCoordinator",
    "DeploymentResult",
    "DeploymentState",
    "SchemaDeploymentPlan",
]
