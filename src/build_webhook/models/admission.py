"""
Pydantic models for the AdmissionReview wire envelope.

The envelope tolerates unknown fields because the API server adds fields
over time; strict decoding applies only to the admitted resource documents.
Both ``admission.k8s.io/v1beta1`` and ``admission.k8s.io/v1`` share this shape.
"""

import base64
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from ..constants import (
    ADMISSION_API_VERSION_V1BETA1,
    ADMISSION_REVIEW_KIND,
    PATCH_TYPE_JSON_PATCH,
)

ENVELOPE_MODEL_CONFIG = {"populate_by_name": True, "extra": "ignore"}


class GroupVersionKind(BaseModel):
    """Fully qualified kind of the admitted object."""

    model_config = ENVELOPE_MODEL_CONFIG

    group: str = ""
    version: str = ""
    kind: str = ""

    def __str__(self) -> str:
        group_version = f"{self.group}/{self.version}" if self.group else self.version
        return f"{group_version}, Kind={self.kind}"


class GroupVersionResource(BaseModel):
    """Fully qualified resource of the admitted object."""

    model_config = ENVELOPE_MODEL_CONFIG

    group: str = ""
    version: str = ""
    resource: str = ""


class UserInfo(BaseModel):
    """Identity of the caller that issued the request."""

    model_config = ENVELOPE_MODEL_CONFIG

    username: str | None = None
    uid: str | None = None
    groups: list[str] | None = None
    extra: dict[str, list[str]] | None = None


class AdmissionRequest(BaseModel):
    """A single create/update/delete/connect request under admission."""

    model_config = ENVELOPE_MODEL_CONFIG

    uid: str = ""
    kind: GroupVersionKind = Field(default_factory=GroupVersionKind)
    resource: GroupVersionResource | None = None
    sub_resource: str | None = Field(None, alias="subResource")
    namespace: str = ""
    name: str = ""
    operation: str = ""
    user_info: UserInfo | None = Field(None, alias="userInfo")
    object: dict[str, Any] | None = None
    old_object: dict[str, Any] | None = Field(None, alias="oldObject")
    dry_run: bool | None = Field(None, alias="dryRun")


class Status(BaseModel):
    """Denial status reported to the API server."""

    model_config = ENVELOPE_MODEL_CONFIG

    metadata: dict[str, Any] = Field(default_factory=dict)
    status: str = "Failure"
    message: str = ""
    reason: str = "BadRequest"
    code: int = 400


class AdmissionResponse(BaseModel):
    """
    Admission decision.

    ``patch`` holds the raw JSON patch bytes; it is base64 encoded on the wire.
    """

    model_config = ENVELOPE_MODEL_CONFIG

    uid: str = ""
    allowed: bool
    patch: bytes | None = None
    patch_type: str | None = Field(None, alias="patchType")
    status: Status | None = None

    @field_serializer("patch")
    def _serialize_patch(self, patch: bytes | None) -> str | None:
        if patch is None:
            return None
        return base64.b64encode(patch).decode("ascii")

    @classmethod
    def allow(cls, patch: bytes | None = None) -> "AdmissionResponse":
        """Build an allowing decision, optionally carrying a JSON patch."""
        if patch is None:
            return cls(allowed=True)
        return cls(allowed=True, patch=patch, patch_type=PATCH_TYPE_JSON_PATCH)

    @classmethod
    def deny(cls, message: str, code: int = 400) -> "AdmissionResponse":
        """Build a denying decision, BadRequest unless another code is given."""
        reason = "InternalError" if code >= 500 else "BadRequest"
        return cls(
            allowed=False, status=Status(message=message, code=code, reason=reason)
        )


class AdmissionReview(BaseModel):
    """The request/response envelope exchanged with the API server."""

    model_config = ENVELOPE_MODEL_CONFIG

    api_version: str = Field(ADMISSION_API_VERSION_V1BETA1, alias="apiVersion")
    kind: str = ADMISSION_REVIEW_KIND
    request: AdmissionRequest | None = None
    response: AdmissionResponse | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire field names, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
