"""
Schema deployment plans.

These Pydantic models describe everything one deployment session needs:
which code and resources to ship, which schema statements to apply in order,
and which cheap procedure call proves the schema is already there. Plans are
usually written as YAML and loaded with :meth:`SchemaDeploymentPlan.from_yaml_file`.
"""
from __future__ import annotations

import re
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .path_safety import safe_resource_name

__all__ = ["SchemaStatement", "ProbeSpec", "SchemaDeploymentPlan", "load_packaged_plan"]

PLAN_PACKAGE = "mojo_deploy.plans"


class SchemaStatement(BaseModel):
    """
    One declarative statement plus the bundles it needs on the server.

    ``referenced_bundles`` replaces guessing class names out of the statement
    text: a statement that says ``FROM CLASS`` lists the bundle holding that
    class explicitly.
    """
    text: str = Field(..., description="Statement passed verbatim to @AdHoc")
    referenced_bundles: List[str] = Field(
        default_factory=list,
        alias="bundles",
        description="Bundle ids that must be uploaded before this statement",
    )

    model_config = {"populate_by_name": True}

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("statement text must not be empty")
        return v


class ProbeSpec(BaseModel):
    """Procedure call used to test whether the schema is present."""
    procedure: str = Field(..., description="Procedure name")
    params: List[Any] = Field(default_factory=list, description="Fixed test arguments")

    @field_validator("procedure")
    @classmethod
    def validate_procedure(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("probe procedure must not be empty")
        return v.strip()

    @property
    def not_found_message(self) -> str:
        """Exact status text the engine returns when the procedure does not exist."""
        return f"Procedure {self.procedure} was not found"


class SchemaDeploymentPlan(BaseModel):
    """
    Deployment plan parsed from a plan YAML file.

    Built once per deployment session and discarded afterwards; nothing here
    is persisted.
    """
    api_version: str = Field(default="mojo-deploy/v1", alias="apiVersion")
    kind: Literal["DeploymentPlan"] = Field(default="DeploymentPlan")

    name: str = Field(..., description="Plan name")
    description: Optional[str] = Field(default=None, description="Plan description")

    resource_prefix: str = Field(default="", description="Directory of resources inside bundles")
    main_bundle_id: str = Field(..., description="Bundle id of the code/resource bundle")
    code_entries: List[str] = Field(default_factory=list, description="Compiled code resource names")
    resources: List[str] = Field(default_factory=list, description="Binary resources to embed")
    statements: List[SchemaStatement] = Field(..., description="Schema statements in apply order")
    probe: ProbeSpec = Field(..., description="Presence probe")

    max_chunk_size: Optional[int] = Field(
        default=None, description="Overrides the configured chunk size for this plan"
    )

    model_config = {"populate_by_name": True}

    @field_validator("statements", mode="before")
    @classmethod
    def coerce_statements(cls, v):
        """Allow bare strings for statements that reference no bundles."""
        if not isinstance(v, list):
            return v
        return [{"text": s} if isinstance(s, str) else s for s in v]

    @field_validator("code_entries", "resources")
    @classmethod
    def validate_names(cls, v: List[str]) -> List[str]:
        for name in v:
            safe_resource_name(name)
        if len(set(v)) != len(v):
            raise ValueError("names must be unique")
        return v

    @field_validator("max_chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def validate_references(self) -> SchemaDeploymentPlan:
        """Statements may only reference bundles this plan uploads."""
        for statement in self.statements:
            for bundle_id in statement.referenced_bundles:
                if not self.provides_bundle(bundle_id):
                    raise ValueError(
                        f"Statement '{statement.text}' references unknown bundle '{bundle_id}'"
                    )
        return self

    def provides_bundle(self, bundle_id: str) -> bool:
        """True for the main bundle or any chunk bundle of a declared resource."""
        if bundle_id == self.main_bundle_id:
            return True
        for resource in self.resources:
            if re.fullmatch(re.escape(resource) + r"\.\d+\.jar", bundle_id):
                return True
        return False

    @classmethod
    def from_yaml_file(cls, path: Path) -> SchemaDeploymentPlan:
        """Load a plan from a YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Deployment plan not found: {path}")

        with open(path, 'r') as f:
            return cls.from_yaml_text(f.read())

    @classmethod
    def from_yaml_text(cls, text: str) -> SchemaDeploymentPlan:
        import yaml

        data = yaml.safe_load(text)
        if not isinstance(data, dict):
            raise ValueError("Deployment plan must be a YAML mapping")

        # Handle nested spec structure
        if "spec" in data:
            spec_data = dict(data["spec"])
            metadata = data.get("metadata") or {}
            spec_data.update({
                "apiVersion": data.get("apiVersion", "mojo-deploy/v1"),
                "kind": data.get("kind", "DeploymentPlan"),
                "name": metadata.get("name"),
                "description": metadata.get("description"),
            })
            return cls.model_validate(spec_data)
        return cls.model_validate(data)


def load_packaged_plan(name: str = "flight_delay") -> SchemaDeploymentPlan:
    """Load one of the plans shipped with this package."""
    resource = importlib_resources.files(PLAN_PACKAGE).joinpath(f"{name}.yaml")
    if not resource.is_file():
        raise FileNotFoundError(f"No packaged deployment plan named {name}")
    return SchemaDeploymentPlan.from_yaml_text(resource.read_text(encoding="utf-8"))
