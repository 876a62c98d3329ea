"""
Common models shared across the admitted resource kinds.

This module defines Kubernetes object metadata and the base class every
admitted document derives from. Admitted documents forbid unknown fields so
that decoding never silently drops part of what the caller submitted.
"""

from typing import Any, ClassVar, Self

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import DecodeError, ShapeError

STRICT_MODEL_CONFIG = {"populate_by_name": True, "extra": "forbid"}


class OwnerReference(BaseModel):
    """Reference to the object owning another object."""

    model_config = STRICT_MODEL_CONFIG

    api_version: str = Field(..., alias="apiVersion")
    kind: str
    name: str
    uid: str
    controller: bool | None = None
    block_owner_deletion: bool | None = Field(None, alias="blockOwnerDeletion")


class ObjectMeta(BaseModel):
    """Kubernetes object metadata."""

    model_config = STRICT_MODEL_CONFIG

    name: str | None = None
    generate_name: str | None = Field(None, alias="generateName")
    namespace: str | None = None
    self_link: str | None = Field(None, alias="selfLink")
    uid: str | None = None
    resource_version: str | None = Field(None, alias="resourceVersion")
    generation: int | None = None
    creation_timestamp: str | None = Field(None, alias="creationTimestamp")
    deletion_timestamp: str | None = Field(None, alias="deletionTimestamp")
    deletion_grace_period_seconds: int | None = Field(
        None, alias="deletionGracePeriodSeconds"
    )
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    owner_references: list[OwnerReference] | None = Field(
        None, alias="ownerReferences"
    )
    finalizers: list[str] | None = None
    cluster_name: str | None = Field(None, alias="clusterName")
    managed_fields: list[dict[str, Any]] | None = Field(None, alias="managedFields")


class GenericResource(BaseModel):
    """
    Base class for admitted resource documents.

    Subclasses declare a ``spec`` field and register their ``KIND``. The shared
    capability interface used by the admission pipeline is ``from_raw``
    (strict decode), ``to_document`` (marshal) and ``spec_document``
    (projection of the spec sub-document).
    """

    model_config = STRICT_MODEL_CONFIG

    KIND: ClassVar[str] = ""

    api_version: str | None = Field(None, alias="apiVersion")
    kind: str | None = None
    metadata: ObjectMeta | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> Self | None:
        """
        Strictly decode a raw document into this kind.

        Args:
            raw: Raw JSON document, or None when the object is absent

        Returns:
            Decoded document, or None when ``raw`` is None (absent object)

        Raises:
            DecodeError: If the document is malformed or has unknown fields
        """
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise DecodeError(
                f"expected a JSON object for {cls.KIND or cls.__name__}, "
                f"got {type(raw).__name__}"
            )
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as e:
            raise DecodeError(_summarize_validation_error(e), cause=e) from e

    def to_document(self) -> dict[str, Any]:
        """Marshal to a plain JSON-like document using wire field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def spec_document(self) -> dict[str, Any]:
        """
        Project the spec sub-document.

        Raises:
            ShapeError: If the marshalled document has no spec
        """
        return get_spec(self.to_document())


def get_spec(document: dict[str, Any]) -> dict[str, Any]:
    """
    Return the spec sub-document of a marshalled resource.

    Raises:
        ShapeError: If the document has no spec object
    """
    if not isinstance(document, dict) or "spec" not in document:
        raise ShapeError("resource has no spec field")
    spec = document["spec"]
    if spec is None:
        return {}
    if not isinstance(spec, dict):
        raise ShapeError(f"resource spec is a {type(spec).__name__}, not an object")
    return spec


def _summarize_validation_error(error: PydanticValidationError) -> str:
    """Render pydantic errors as ``loc: message`` pairs."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        if item["type"] == "extra_forbidden":
            parts.append(f'unknown field "{location}"')
        else:
            parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)
