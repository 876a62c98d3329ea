"""
HTTPS transport and lifecycle of the admission webhook.

The transport decodes AdmissionReview envelopes and hands the request to the
admission pipeline. Only envelope-level failures (wrong content type,
undecodable body, unencodable response) surface as HTTP errors; everything
about the admitted object becomes an admission decision.
"""

import asyncio
import json
import logging
import ssl

from aiohttp.web import Application, AppRunner, Request, Response, TCPSite
from kubernetes import client
from pydantic import ValidationError

from ..constants import (
    CONTENT_TYPE_JSON,
    ERROR_DECODE_BODY,
    ERROR_ENCODE_RESPONSE,
    ERROR_INVALID_CONTENT_TYPE,
)
from ..errors import KubernetesAPIError, TransportError
from ..models.admission import AdmissionReview
from ..settings import Settings
from ..utils.certificates import (
    CertificateBundle,
    CertificateProvisioner,
    CertificateSecretStore,
    make_tls_context,
)
from ..utils.kubernetes import get_apiserver_client_ca, get_deployment_owner_reference
from ..utils.registration import RegistrationReconciler, build_registration
from .pipeline import AdmissionPipeline

logger = logging.getLogger(__name__)


class AdmissionHandler:
    """aiohttp request handler serving AdmissionReview calls."""

    def __init__(self, pipeline: AdmissionPipeline):
        self.pipeline = pipeline

    async def __call__(self, request: Request) -> Response:
        if request.content_type != CONTENT_TYPE_JSON:
            return Response(status=415, text=ERROR_INVALID_CONTENT_TYPE)

        body = await request.read()
        try:
            review = AdmissionReview.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"Could not decode admission review: {e}")
            return Response(status=400, text=ERROR_DECODE_BODY.format(e))
        if review.request is None:
            return Response(
                status=400, text=ERROR_DECODE_BODY.format("missing request")
            )

        decision = self.pipeline.admit(review.request)
        decision.uid = review.request.uid
        reply = AdmissionReview(api_version=review.api_version, response=decision)

        try:
            payload = json.dumps(reply.to_wire())
        except (TypeError, ValueError) as e:
            logger.error(f"Could not encode admission response: {e}")
            return Response(status=500, text=ERROR_ENCODE_RESPONSE.format(e))
        return Response(text=payload, content_type=CONTENT_TYPE_JSON)


def create_admission_app(pipeline: AdmissionPipeline) -> Application:
    """Build the aiohttp application serving admission requests on ``/``."""
    app = Application()
    app.router.add_post("/", AdmissionHandler(pipeline))
    return app


async def stop_requested_within(stop: asyncio.Event, timeout: float) -> bool:
    """Wait up to ``timeout`` seconds for ``stop``; return whether it fired."""
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=timeout)
    except TimeoutError:
        return False
    return True


class WebhookServer:
    """
    Runs the admission webhook from certificate provisioning to shutdown.

    Lifecycle of :meth:`run`:

    1. Get or create the serving certificates
    2. Load the API server client CA and build the TLS context
    3. Start the HTTPS listener
    4. Wait the registration delay (returning early if stopped)
    5. Register the webhook configuration
    6. Serve until stopped, then deregister and close the listener
    """

    def __init__(
        self,
        settings: Settings,
        k8s_client: client.ApiClient,
        pipeline: AdmissionPipeline,
        provisioner: CertificateProvisioner | None = None,
        reconciler: RegistrationReconciler | None = None,
    ):
        self.settings = settings
        self.k8s_client = k8s_client
        self.pipeline = pipeline
        self.provisioner = provisioner or CertificateProvisioner(
            CertificateSecretStore(k8s_client), settings.service_name
        )
        self.reconciler = reconciler or RegistrationReconciler(
            k8s_client, conflict_retries=settings.registration_conflict_retries
        )
        self.app = create_admission_app(pipeline)
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self.listening = False
        self.registered = False

    def readiness(self) -> dict[str, bool]:
        """Readiness checks for the observability server."""
        return {"listener": self.listening, "registration": self.registered}

    async def run(self, stop: asyncio.Event) -> None:
        """
        Serve admission requests until ``stop`` is set.

        Raises:
            WebhookError: If certificates, TLS setup or registration fail
        """
        bundle = await self.provisioner.ensure(
            self.settings.secret_name, self.settings.system_namespace
        )
        client_ca = await asyncio.to_thread(get_apiserver_client_ca, self.k8s_client)
        tls_context = make_tls_context(
            bundle,
            client_ca,
            self.settings.webhook_cert_dir,
            require_client_cert=self.settings.webhook_require_client_cert,
        )

        await self.start(tls_context)
        try:
            if await stop_requested_within(
                stop, self.settings.registration_delay_seconds
            ):
                logger.info("Webhook stopped before registration")
                return

            await self.register(bundle)
            await stop.wait()
            logger.info("Webhook server shutting down")
            await self.deregister()
        finally:
            await self.stop()

    async def register(self, bundle: CertificateBundle) -> str:
        """Register the webhook configuration, owned by our deployment."""
        owner_reference = await asyncio.to_thread(
            get_deployment_owner_reference,
            self.k8s_client,
            self.settings.deployment_name,
            self.settings.system_namespace,
        )
        desired = build_registration(
            name=self.settings.webhook_name,
            service_name=self.settings.service_name,
            namespace=self.settings.system_namespace,
            ca_cert=bundle.ca_cert,
            owner_reference=owner_reference,
            failure_policy=self.settings.failure_policy,
            timeout_seconds=self.settings.webhook_timeout_seconds,
        )
        result = await self.reconciler.reconcile(desired)
        self.registered = True
        return result

    async def deregister(self) -> None:
        """Remove the webhook configuration if configured to do so."""
        if not self.registered or not self.settings.deregister_on_shutdown:
            return
        try:
            await self.reconciler.deregister(self.settings.webhook_name)
        except KubernetesAPIError as e:
            logger.error(f"Failed to deregister webhook: {e}")
        self.registered = False

    async def start(self, ssl_context: ssl.SSLContext | None = None) -> None:
        """Start the admission listener."""
        self.runner = AppRunner(self.app)
        await self.runner.setup()

        self.site = TCPSite(
            self.runner,
            self.settings.webhook_host,
            self.settings.webhook_port,
            ssl_context=ssl_context,
        )
        try:
            await self.site.start()
        except OSError as e:
            await self.stop()
            raise TransportError(
                f"cannot listen on {self.settings.webhook_host}:{self.settings.webhook_port}: {e}",
                cause=e,
            ) from e
        self.listening = True
        logger.info(
            f"Webhook listening on {self.settings.webhook_host}:{self.settings.webhook_port}"
        )

    async def stop(self) -> None:
        """Stop the admission listener."""
        self.listening = False
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Webhook listener stopped")
