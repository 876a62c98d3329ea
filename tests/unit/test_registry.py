"""Unit tests for the handler registry."""

import pytest

from build_webhook.models.build import Build, BuildTemplate
from build_webhook.webhooks.build import build_handlers
from build_webhook.webhooks.registry import HandlerDescriptor, HandlerRegistry


def noop_validator(ctx, patches, old, new):
    return None


class TestHandlerDescriptor:
    """Tests for HandlerDescriptor construction."""

    def test_requires_kind(self):
        """An empty kind is rejected."""
        with pytest.raises(ValueError, match="kind"):
            HandlerDescriptor(kind="", factory=Build, validator=noop_validator)

    def test_requires_validator(self):
        """Every handler has a validator."""
        with pytest.raises(ValueError, match="validator"):
            HandlerDescriptor(kind="Build", factory=Build, validator=None)

    def test_defaulter_is_optional(self):
        """Handlers without a defaulter are valid."""
        handler = HandlerDescriptor(
            kind="Build", factory=Build, validator=noop_validator
        )
        assert handler.defaulter is None


class TestHandlerRegistry:
    """Tests for HandlerRegistry."""

    def test_lookup_by_kind(self):
        """Handlers are keyed by kind name."""
        registry = HandlerRegistry(
            [HandlerDescriptor(kind="Build", factory=Build, validator=noop_validator)]
        )
        assert registry["Build"].factory is Build
        assert registry.get("Widget") is None
        assert len(registry) == 1
        assert list(registry) == ["Build"]

    def test_duplicate_kind_is_rejected(self):
        """Two handlers cannot claim the same kind."""
        with pytest.raises(ValueError, match="duplicate"):
            HandlerRegistry(
                [
                    HandlerDescriptor(
                        kind="Build", factory=Build, validator=noop_validator
                    ),
                    HandlerDescriptor(
                        kind="Build", factory=BuildTemplate, validator=noop_validator
                    ),
                ]
            )

    def test_is_read_only(self):
        """The table cannot be mutated after construction."""
        registry = build_handlers()
        with pytest.raises(TypeError):
            registry["Widget"] = registry["Build"]  # type: ignore[index]
        with pytest.raises(TypeError):
            registry._handlers["Widget"] = registry["Build"]  # type: ignore[index]

    def test_build_handlers_covers_build_group(self):
        """All three build kinds are registered."""
        registry = build_handlers()
        assert sorted(registry) == ["Build", "BuildTemplate", "ClusterBuildTemplate"]
        assert registry["Build"].defaulter is not None
        assert registry["BuildTemplate"].defaulter is None
