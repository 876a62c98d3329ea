"""
Pydantic models for Build, BuildTemplate and ClusterBuildTemplate resources.

These models define the shape admitted documents are strictly decoded into.
Containers, volumes and environment entries are Kubernetes core types and are
carried as opaque JSON objects.
"""

from typing import Any, ClassVar

from pydantic import BaseModel, Field

from ..constants import KIND_BUILD, KIND_BUILD_TEMPLATE, KIND_CLUSTER_BUILD_TEMPLATE
from .common import STRICT_MODEL_CONFIG, GenericResource


class GitSourceSpec(BaseModel):
    """Git repository to fetch sources from."""

    model_config = STRICT_MODEL_CONFIG

    url: str
    revision: str


class GCSSourceSpec(BaseModel):
    """Google Cloud Storage location to fetch sources from."""

    model_config = STRICT_MODEL_CONFIG

    type: str
    location: str


class SourceSpec(BaseModel):
    """Where the build sources come from."""

    model_config = STRICT_MODEL_CONFIG

    git: GitSourceSpec | None = None
    gcs: GCSSourceSpec | None = None
    custom: dict[str, Any] | None = None
    sub_path: str | None = Field(None, alias="subPath")


class ArgumentSpec(BaseModel):
    """Value supplied for a template parameter."""

    model_config = STRICT_MODEL_CONFIG

    name: str
    value: str


class TemplateInstantiationSpec(BaseModel):
    """Reference to a template plus its arguments."""

    model_config = STRICT_MODEL_CONFIG

    name: str = ""
    kind: str | None = None
    arguments: list[ArgumentSpec] | None = None
    env: list[dict[str, Any]] | None = None


class BuildSpec(BaseModel):
    """Desired state of a Build."""

    model_config = STRICT_MODEL_CONFIG

    generation: int | None = Field(
        None, description="Spec generation, maintained by the admission webhook"
    )
    source: SourceSpec | None = None
    steps: list[dict[str, Any]] | None = None
    volumes: list[dict[str, Any]] | None = None
    service_account_name: str | None = Field(None, alias="serviceAccountName")
    template: TemplateInstantiationSpec | None = None
    node_selector: dict[str, str] | None = Field(None, alias="nodeSelector")
    timeout: str | None = None
    affinity: dict[str, Any] | None = None


class Build(GenericResource):
    """A Build resource."""

    KIND: ClassVar[str] = KIND_BUILD

    spec: BuildSpec = Field(default_factory=BuildSpec)
    status: dict[str, Any] | None = None


class ParameterSpec(BaseModel):
    """Parameter declared by a build template."""

    model_config = STRICT_MODEL_CONFIG

    name: str
    description: str | None = None
    default: str | None = None


class BuildTemplateSpec(BaseModel):
    """Desired state of a BuildTemplate or ClusterBuildTemplate."""

    model_config = STRICT_MODEL_CONFIG

    generation: int | None = Field(
        None, description="Spec generation, maintained by the admission webhook"
    )
    parameters: list[ParameterSpec] | None = None
    steps: list[dict[str, Any]] | None = None
    volumes: list[dict[str, Any]] | None = None


class BuildTemplate(GenericResource):
    """A namespaced BuildTemplate resource."""

    KIND: ClassVar[str] = KIND_BUILD_TEMPLATE

    spec: BuildTemplateSpec = Field(default_factory=BuildTemplateSpec)
    status: dict[str, Any] | None = None


class ClusterBuildTemplate(GenericResource):
    """A cluster-scoped BuildTemplate resource."""

    KIND: ClassVar[str] = KIND_CLUSTER_BUILD_TEMPLATE

    spec: BuildTemplateSpec = Field(default_factory=BuildTemplateSpec)
    status: dict[str, Any] | None = None
