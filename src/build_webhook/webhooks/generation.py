"""
Spec generation bumping.

Kubernetes scrubs ``metadata.generation`` for custom resources served by
older API servers, so the webhook keeps its own counter at
``spec.generation``: set to 1 on create and bumped by one whenever the spec
changes structurally.
"""

import json
import logging
from typing import Any, TypeAlias

from ..constants import GENERATION_PATH
from ..errors import EncodingError, GenerationError
from ..models.common import GenericResource, get_spec
from .patch import PatchOperation, create_patch

logger = logging.getLogger(__name__)

Document: TypeAlias = GenericResource | dict[str, Any]


def _spec_of(resource: Document) -> dict[str, Any]:
    if isinstance(resource, GenericResource):
        return resource.spec_document()
    return get_spec(resource)


def _generation_of(spec: dict[str, Any]) -> int:
    generation = spec.get("generation") or 0
    if isinstance(generation, bool) or not isinstance(generation, int):
        raise GenerationError(f"spec.generation must be an integer, got {generation!r}")
    if generation < 0:
        raise GenerationError(f"spec.generation must not be negative, got {generation}")
    return generation


def update_generation(
    patches: list[PatchOperation], old: Document | None, new: Document | None
) -> None:
    """
    Append the generation patch for an old/new pair, if one is needed.

    - No old object (create): ``add /spec/generation = 1``.
    - Specs differ: set ``old generation + 1``, using ``replace`` when the new
      object already carries a generation and ``add`` otherwise.
    - Specs equal: nothing is appended.

    A missing generation on the old object counts as 0.

    Args:
        patches: Shared patch list to append to
        old: Previously stored object, None on create
        new: Submitted object, None on delete

    Raises:
        ShapeError: If either object has no spec
        GenerationError: If the generation cannot be computed
    """
    if old is None:
        logger.info("Creating an object, setting generation to 1")
        patches.append(PatchOperation("add", GENERATION_PATH, 1))
        return
    if new is None:
        logger.info("No new object, not bumping generation")
        return

    old_spec = _spec_of(old)
    new_spec = _spec_of(new)

    try:
        spec_patches = create_patch(old_spec, new_spec)
    except EncodingError as e:
        raise GenerationError(f"cannot diff specs: {e}", cause=e) from e

    if not spec_patches:
        logger.info("No changes in the spec, not bumping generation")
        return

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Specs differ: %s",
            json.dumps([operation.to_dict() for operation in spec_patches]),
        )

    old_generation = _generation_of(old_spec)
    # The submitted object may not carry a generation yet; "replace" needs one.
    operation = "replace" if _generation_of(new_spec) else "add"
    patches.append(PatchOperation(operation, GENERATION_PATH, old_generation + 1))

