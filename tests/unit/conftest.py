"""Shared pytest fixtures for build webhook unit tests."""

import pytest

from build_webhook.webhooks.build import build_handlers
from build_webhook.webhooks.pipeline import AdmissionPipeline
from build_webhook.webhooks.registry import HandlerDescriptor, HandlerRegistry
from tests.utils.admission import Sample, require_image


@pytest.fixture
def sample_handlers():
    """Registry holding only the Sample kind."""
    return HandlerRegistry(
        [HandlerDescriptor(kind="Sample", factory=Sample, validator=require_image)]
    )


@pytest.fixture
def sample_pipeline(sample_handlers):
    return AdmissionPipeline(sample_handlers)


@pytest.fixture
def build_pipeline():
    return AdmissionPipeline(build_handlers())
