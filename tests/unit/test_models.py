"""Unit tests for the admitted document and envelope models."""

import base64
import json

import pytest

from build_webhook.errors import DecodeError, ShapeError
from build_webhook.models.admission import AdmissionResponse, AdmissionReview
from build_webhook.models.build import Build, BuildTemplate, ClusterBuildTemplate
from build_webhook.models.common import get_spec


class TestStrictDecode:
    """Tests for GenericResource.from_raw."""

    def test_absent_object_decodes_to_none(self):
        """None stands for an absent object."""
        assert Build.from_raw(None) is None

    def test_decodes_full_build(self):
        """A realistic build decodes with its nested structures."""
        raw = {
            "apiVersion": "build.knative.dev/v1alpha1",
            "kind": "Build",
            "metadata": {
                "name": "hello",
                "namespace": "default",
                "labels": {"app": "hello"},
                "creationTimestamp": None,
            },
            "spec": {
                "source": {"git": {"url": "https://github.com/x/y", "revision": "main"}},
                "steps": [{"name": "build", "image": "busybox", "args": ["echo"]}],
                "serviceAccountName": "builder",
                "timeout": "20m",
            },
        }
        build = Build.from_raw(raw)
        assert build.metadata.name == "hello"
        assert build.spec.source.git.revision == "main"
        assert build.spec.service_account_name == "builder"

    def test_unknown_top_level_field_is_rejected(self):
        """Strict decoding refuses fields the model does not know."""
        with pytest.raises(DecodeError, match='unknown field "bogus"'):
            Build.from_raw({"spec": {}, "bogus": 1})

    def test_unknown_spec_field_is_rejected(self):
        """Unknown fields are rejected at any depth."""
        with pytest.raises(DecodeError, match='unknown field "spec.imagee"'):
            Build.from_raw({"spec": {"imagee": "x"}})

    def test_wrong_type_is_rejected(self):
        """Type errors name the offending location."""
        with pytest.raises(DecodeError, match="spec.steps"):
            BuildTemplate.from_raw({"spec": {"steps": "not-a-list"}})

    def test_non_object_is_rejected(self):
        """Documents must be JSON objects."""
        with pytest.raises(DecodeError, match="expected a JSON object"):
            ClusterBuildTemplate.from_raw(["spec"])

    def test_to_document_uses_wire_names(self):
        """Marshalling uses camelCase and omits unset fields."""
        build = Build.from_raw({"spec": {"serviceAccountName": "sa"}})
        assert build.to_document() == {"spec": {"serviceAccountName": "sa"}}

    def test_spec_document_projects_spec(self):
        """The spec projection matches the marshalled spec."""
        build = Build.from_raw({"spec": {"generation": 3}})
        assert build.spec_document() == {"generation": 3}


class TestGetSpec:
    """Tests for get_spec."""

    def test_missing_spec(self):
        """Documents without a spec are a shape error."""
        with pytest.raises(ShapeError):
            get_spec({"metadata": {}})

    def test_null_spec_is_empty(self):
        """A null spec projects to an empty object."""
        assert get_spec({"spec": None}) == {}

    def test_scalar_spec(self):
        """A spec must be an object."""
        with pytest.raises(ShapeError):
            get_spec({"spec": "x"})


class TestAdmissionEnvelope:
    """Tests for the AdmissionReview envelope models."""

    def test_envelope_tolerates_unknown_fields(self):
        """New API server fields do not break decoding."""
        review = AdmissionReview.model_validate(
            {
                "apiVersion": "admission.k8s.io/v1",
                "kind": "AdmissionReview",
                "request": {
                    "uid": "abc",
                    "kind": {"group": "build.knative.dev", "version": "v1alpha1", "kind": "Build"},
                    "operation": "CREATE",
                    "options": {"fieldManager": "kubectl"},
                    "requestKind": {"kind": "Build"},
                },
            }
        )
        assert review.request.uid == "abc"
        assert str(review.request.kind) == "build.knative.dev/v1alpha1, Kind=Build"

    def test_allow_with_patch_is_base64_encoded(self):
        """The patch travels base64 encoded with a JSONPatch type."""
        response = AdmissionResponse.allow(b"[]")
        response.uid = "abc"
        wire = AdmissionReview(response=response).to_wire()
        assert wire["response"] == {
            "uid": "abc",
            "allowed": True,
            "patch": base64.b64encode(b"[]").decode(),
            "patchType": "JSONPatch",
        }

    def test_deny_carries_bad_request_status(self):
        """Denials carry a Failure status with the message."""
        wire = AdmissionReview(response=AdmissionResponse.deny("nope")).to_wire()
        assert wire["response"]["allowed"] is False
        assert "patch" not in wire["response"]
        assert wire["response"]["status"] == {
            "metadata": {},
            "status": "Failure",
            "message": "nope",
            "reason": "BadRequest",
            "code": 400,
        }

    def test_wire_form_is_json_serializable(self):
        """to_wire returns plain JSON types."""
        wire = AdmissionReview(response=AdmissionResponse.allow(b'[{"op": "add"}]')).to_wire()
        assert json.loads(json.dumps(wire)) == wire
