"""
Admission pipeline: decode, bump generation, default, validate, patch.

Every per-request failure is converted into a denial; nothing raised while
admitting a request reaches the transport layer.
"""

import logging
import time

from ..constants import (
    ADMITTED_OPERATIONS,
    ERROR_DECODE_NEW,
    ERROR_DECODE_OLD,
    ERROR_GENERATION,
    ERROR_UNHANDLED_KIND,
)
from ..errors import DecodeError, GenerationError, WebhookError
from ..models.admission import AdmissionRequest, AdmissionResponse
from ..observability.logging import WebhookLogger
from ..observability.metrics import MetricsCollector, metrics_collector
from .generation import update_generation
from .patch import PatchOperation, serialize_patch
from .registry import AdmissionContext, HandlerRegistry

logger = logging.getLogger(__name__)
webhook_logger = WebhookLogger(__name__)


class AdmissionPipeline:
    """
    Computes admission decisions for the kinds in a handler registry.

    The pipeline holds no request-scoped state, so a single instance serves
    concurrent requests.
    """

    def __init__(
        self, handlers: HandlerRegistry, metrics: MetricsCollector | None = None
    ):
        self.handlers = handlers
        self.metrics = metrics or metrics_collector

    def admit(self, request: AdmissionRequest) -> AdmissionResponse:
        """
        Decide on a single admission request.

        Create and update requests run through the handler of their kind;
        any other operation is allowed unchanged.

        Args:
            request: Decoded admission request

        Returns:
            Decision carrying the request UID
        """
        kind = request.kind.kind
        operation = request.operation.upper()
        ctx = AdmissionContext(
            kind=kind,
            namespace=request.namespace,
            name=request.name,
            operation=operation,
            uid=request.uid,
            user_info=request.user_info,
            dry_run=bool(request.dry_run),
        )
        webhook_logger.log_admission_request(
            uid=request.uid,
            kind=kind,
            namespace=request.namespace,
            name=request.name,
            operation=operation,
            user=request.user_info.username if request.user_info else None,
        )

        start_time = time.perf_counter()
        patch_count = 0
        with self.metrics.track_admission(kind):
            if operation not in ADMITTED_OPERATIONS:
                logger.info(f"Unhandled webhook operation, letting it through {operation}")
                decision = AdmissionResponse.allow(serialize_patch([]))
            else:
                try:
                    patches = self.mutate(ctx, request)
                except WebhookError as e:
                    decision = AdmissionResponse.deny(str(e), code=e.status_code)
                except Exception as e:
                    logger.error(
                        f"Unexpected error admitting {kind} {request.namespace}/{request.name}",
                        exc_info=True,
                    )
                    decision = AdmissionResponse.deny(str(e) or type(e).__name__)
                else:
                    patch_count = len(patches)
                    decision = AdmissionResponse.allow(serialize_patch(patches))

        decision.uid = request.uid
        self.metrics.record_decision(kind, operation, decision.allowed, patch_count)
        webhook_logger.log_admission_decision(
            kind=kind,
            namespace=request.namespace,
            name=request.name,
            allowed=decision.allowed,
            patch_count=patch_count,
            message=decision.status.message if decision.status else None,
            duration=time.perf_counter() - start_time,
        )
        return decision

    def mutate(
        self, ctx: AdmissionContext, request: AdmissionRequest
    ) -> list[PatchOperation]:
        """
        Run the handler chain for a create or update request.

        Returns:
            Patch operations accumulated by the generation policy, the
            defaulter and the validator, in that order

        Raises:
            DecodeError: Unknown kind or undecodable object
            GenerationError: Generation could not be computed
            Exception: Whatever the kind's defaulter or validator raised
        """
        handler = self.handlers.get(ctx.kind)
        if handler is None:
            logger.error(f"Unhandled kind {ctx.kind!r}")
            raise DecodeError(ERROR_UNHANDLED_KIND.format(ctx.kind))

        # None denotes an absent object: no old object on create, no new on delete
        try:
            new = handler.factory.from_raw(request.object)
        except DecodeError as e:
            raise DecodeError(ERROR_DECODE_NEW.format(e), cause=e) from e
        try:
            old = handler.factory.from_raw(request.old_object)
        except DecodeError as e:
            raise DecodeError(ERROR_DECODE_OLD.format(e), cause=e) from e

        patches: list[PatchOperation] = []

        try:
            update_generation(patches, old, new)
        except WebhookError as e:
            logger.error(f"Failed to update generation: {e}")
            raise GenerationError(ERROR_GENERATION.format(e), cause=e) from e

        if handler.defaulter is not None:
            try:
                handler.defaulter(ctx, patches, new)
            except Exception as e:
                # The defaulter owns the wording of the message users see
                logger.error(f"Failed the resource specific defaulter: {e}")
                raise

        try:
            handler.validator(ctx, patches, old, new)
        except Exception as e:
            logger.error(f"Failed the resource specific validation: {e}")
            raise

        return patches
