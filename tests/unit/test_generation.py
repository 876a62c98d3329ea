"""Unit tests for spec generation bumping."""

import pytest

from build_webhook.errors import GenerationError, ShapeError
from build_webhook.models.build import Build, BuildTemplate
from build_webhook.webhooks.generation import update_generation
from build_webhook.webhooks.patch import PatchOperation


def build(**spec):
    return Build.model_validate({"spec": spec})


class TestUpdateGeneration:
    """Tests for update_generation."""

    def test_create_sets_generation_to_one(self):
        """No old object means the object is new."""
        patches = []
        update_generation(patches, None, build(steps=[{"image": "a"}]))
        assert patches == [PatchOperation("add", "/spec/generation", 1)]

    def test_no_new_object_is_a_noop(self):
        """Deletes carry no new object and never bump."""
        patches = []
        update_generation(patches, build(generation=3), None)
        assert patches == []

    def test_unchanged_spec_is_a_noop(self):
        """Identical specs do not bump the generation."""
        patches = []
        old = build(generation=2, timeout="5m")
        new = build(generation=2, timeout="5m")
        update_generation(patches, old, new)
        assert patches == []

    def test_changed_spec_replaces_generation(self):
        """A spec change with a generation present is a replace of old + 1."""
        patches = []
        update_generation(
            patches,
            build(generation=1, serviceAccountName="a"),
            build(generation=1, serviceAccountName="b"),
        )
        assert patches == [PatchOperation("replace", "/spec/generation", 2)]

    def test_changed_spec_without_new_generation_adds(self):
        """A submitted object without a generation gets an add."""
        patches = []
        update_generation(
            patches,
            build(generation=4, timeout="5m"),
            build(timeout="10m"),
        )
        assert patches == [PatchOperation("add", "/spec/generation", 5)]

    def test_missing_old_generation_counts_as_zero(self):
        """An old object that predates generations bumps to 1."""
        patches = []
        update_generation(patches, build(timeout="5m"), build(timeout="10m"))
        assert patches == [PatchOperation("add", "/spec/generation", 1)]

    def test_generation_is_monotonic(self):
        """The emitted value is always greater than the old generation."""
        for old_generation in (0, 1, 7, 1000):
            patches = []
            update_generation(
                patches,
                build(generation=old_generation, timeout="1m"),
                build(generation=old_generation, timeout="2m"),
            )
            assert patches[0].value > old_generation

    def test_works_on_plain_documents(self):
        """Raw documents are accepted alongside models."""
        patches = []
        update_generation(
            patches,
            {"spec": {"image": "a", "generation": 1}},
            {"spec": {"image": "b", "generation": 1}},
        )
        assert patches == [PatchOperation("replace", "/spec/generation", 2)]

    def test_appends_to_existing_patches(self):
        """Earlier operations are kept in front."""
        earlier = PatchOperation("add", "/metadata/labels", {})
        patches = [earlier]
        update_generation(patches, None, BuildTemplate.model_validate({"spec": {}}))
        assert patches == [earlier, PatchOperation("add", "/spec/generation", 1)]

    def test_document_without_spec_is_a_shape_error(self):
        """Both sides must have a spec."""
        with pytest.raises(ShapeError, match="resource has no spec field"):
            update_generation([], {"spec": {}}, {"metadata": {}})

    def test_non_integer_generation_is_rejected(self):
        """A corrupt stored generation cannot be bumped."""
        with pytest.raises(GenerationError):
            update_generation(
                [],
                {"spec": {"generation": "one", "image": "a"}},
                {"spec": {"image": "b"}},
            )

    def test_negative_generation_is_rejected(self):
        """Generations are never negative."""
        with pytest.raises(GenerationError):
            update_generation(
                [],
                {"spec": {"generation": -1, "image": "a"}},
                {"spec": {"image": "b"}},
            )
