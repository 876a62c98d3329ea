"""Admission request builders and a minimal test kind."""

from typing import Any, ClassVar

from build_webhook.errors import ValidationError
from build_webhook.models.admission import AdmissionRequest
from build_webhook.models.common import GenericResource

DEFAULT_UID = "705ab4f5-6393-11e8-b7cc-42010a800002"


class Sample(GenericResource):
    """Minimal kind with an opaque spec."""

    KIND: ClassVar[str] = "Sample"

    spec: dict[str, Any] | None = None


def require_image(ctx, patches, old, new):
    """Validator rejecting samples without an image."""
    if new is not None and not (new.spec or {}).get("image"):
        raise ValidationError("image field required")


def request_document(
    kind: str = "Build",
    operation: str = "CREATE",
    obj: dict | None = None,
    old: dict | None = None,
    uid: str = DEFAULT_UID,
) -> dict[str, Any]:
    """An AdmissionRequest document the way the API server sends it."""
    return {
        "uid": uid,
        "kind": {"group": "build.knative.dev", "version": "v1alpha1", "kind": kind},
        "resource": {
            "group": "build.knative.dev",
            "version": "v1alpha1",
            "resource": kind.lower() + "s",
        },
        "namespace": "default",
        "name": "hello",
        "operation": operation,
        "userInfo": {"username": "system:admin", "groups": ["system:masters"]},
        "object": obj,
        "oldObject": old,
    }


def make_request(**kwargs) -> AdmissionRequest:
    """Decoded AdmissionRequest, see ``request_document``."""
    return AdmissionRequest.model_validate(request_document(**kwargs))
