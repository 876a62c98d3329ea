"""
Serving certificate provisioning for the admission webhook.

The webhook owns its TLS identity: a CA and a server certificate signed by
it, stored in a Kubernetes secret. The first replica to start generates the
material; concurrent creators race on the secret name and every replica then
uses whatever the secret ended up holding.
"""

import asyncio
import base64
import logging
import os
import ssl
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from kubernetes import client
from kubernetes.client.rest import ApiException

from ..constants import (
    CERT_KEY_SIZE,
    CERT_VALIDITY_DAYS,
    SECRET_CA_CERT,
    SECRET_SERVER_CERT,
    SECRET_SERVER_KEY,
)
from ..errors import KubernetesAPIError, MissingCredentialError
from ..observability.metrics import metrics_collector

logger = logging.getLogger(__name__)

CERTIFICATE_ORGANIZATION = "knative.dev"


@dataclass(frozen=True)
class CertificateBundle:
    """PEM encoded serving key, serving certificate and issuing CA."""

    server_key: bytes
    server_cert: bytes
    ca_cert: bytes

    def to_secret_data(self) -> dict[str, str]:
        """Secret ``data`` payload (base64 encoded values)."""
        return {
            SECRET_SERVER_KEY: base64.b64encode(self.server_key).decode(),
            SECRET_SERVER_CERT: base64.b64encode(self.server_cert).decode(),
            SECRET_CA_CERT: base64.b64encode(self.ca_cert).decode(),
        }

    @classmethod
    def from_secret_data(cls, data: dict[str, str] | None) -> "CertificateBundle":
        """
        Decode a secret ``data`` payload.

        Raises:
            MissingCredentialError: If any of the three keys is absent
        """
        data = data or {}
        for key, label in (
            (SECRET_SERVER_KEY, "server key"),
            (SECRET_SERVER_CERT, "server cert"),
            (SECRET_CA_CERT, "ca cert"),
        ):
            if not data.get(key):
                raise MissingCredentialError(f"{label} missing")
        return cls(
            server_key=base64.b64decode(data[SECRET_SERVER_KEY]),
            server_cert=base64.b64decode(data[SECRET_SERVER_CERT]),
            ca_cert=base64.b64decode(data[SECRET_CA_CERT]),
        )


def _new_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=CERT_KEY_SIZE)


def service_dns_names(service_name: str, namespace: str) -> list[str]:
    """DNS names a service is reachable under from inside the cluster."""
    return [
        service_name,
        f"{service_name}.{namespace}",
        f"{service_name}.{namespace}.svc",
        f"{service_name}.{namespace}.svc.cluster.local",
    ]


def create_certs(
    service_name: str, namespace: str, now: datetime | None = None
) -> CertificateBundle:
    """
    Generate a CA and a server certificate for a service.

    Args:
        service_name: Name of the service fronting the webhook
        namespace: Namespace of the service
        now: Start of the validity period (defaults to the current time)

    Returns:
        Freshly generated certificate bundle
    """
    now = now or datetime.now(UTC)
    not_after = now + timedelta(days=CERT_VALIDITY_DAYS)

    ca_key = _new_private_key()
    ca_name = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, CERTIFICATE_ORGANIZATION),
            x509.NameAttribute(NameOID.COMMON_NAME, f"{service_name}-ca"),
        ]
    )
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(ca_key, hashes.SHA256())
    )

    server_key = _new_private_key()
    dns_names = service_dns_names(service_name, namespace)
    server_cert = (
        x509.CertificateBuilder()
        .subject_name(
            x509.Name(
                [
                    x509.NameAttribute(
                        NameOID.ORGANIZATION_NAME, CERTIFICATE_ORGANIZATION
                    ),
                    x509.NameAttribute(NameOID.COMMON_NAME, dns_names[2]),
                ]
            )
        )
        .issuer_name(ca_name)
        .public_key(server_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in dns_names]),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )

    return CertificateBundle(
        server_key=server_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ),
        server_cert=server_cert.public_bytes(serialization.Encoding.PEM),
        ca_cert=ca_cert.public_bytes(serialization.Encoding.PEM),
    )


class CertificateSecretStore:
    """Reads and creates the Kubernetes secret holding the serving certificates."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize secret store.

        Args:
            k8s_client: Optional Kubernetes API client
        """
        self.k8s_client = k8s_client
        self._v1: client.CoreV1Api | None = None

    @property
    def v1(self) -> client.CoreV1Api:
        """Get CoreV1Api client."""
        if self._v1 is None:
            if self.k8s_client:
                self._v1 = client.CoreV1Api(self.k8s_client)
            else:
                self._v1 = client.CoreV1Api()
        return self._v1

    async def get(self, name: str, namespace: str) -> client.V1Secret | None:
        """
        Retrieve a secret.

        Returns:
            Secret object if found, None if not found

        Raises:
            KubernetesAPIError: If read fails for reasons other than 404
        """
        try:
            return await asyncio.to_thread(
                self.v1.read_namespaced_secret, name=name, namespace=namespace
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise KubernetesAPIError(
                f"Failed to read secret {namespace}/{name}",
                reason=e.reason,
                status=e.status,
                cause=e,
            ) from e

    async def create(self, name: str, namespace: str, data: dict[str, str]) -> bool:
        """
        Create a secret.

        Returns:
            True if created, False if a secret with that name already exists

        Raises:
            KubernetesAPIError: If creation fails for any other reason
        """
        body = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            type="Opaque",
            data=data,
        )
        try:
            await asyncio.to_thread(
                self.v1.create_namespaced_secret, namespace=namespace, body=body
            )
            return True
        except ApiException as e:
            if e.status == 409:
                return False
            raise KubernetesAPIError(
                f"Failed to create secret {namespace}/{name}",
                reason=e.reason,
                status=e.status,
                cause=e,
            ) from e


class CertificateProvisioner:
    """Gets or lazily creates the serving certificate bundle."""

    def __init__(self, store: CertificateSecretStore, service_name: str):
        self.store = store
        self.service_name = service_name

    async def ensure(self, name: str, namespace: str) -> CertificateBundle:
        """
        Return the certificate bundle stored in a secret, creating it if needed.

        Args:
            name: Secret name
            namespace: Secret namespace (also the service namespace)

        Raises:
            MissingCredentialError: If the secret lacks one of the three keys
            KubernetesAPIError: If the secret cannot be read or created
        """
        try:
            bundle, result = await self._get_or_create(name, namespace)
        except Exception:
            metrics_collector.record_certificate_provisioning("error")
            raise
        metrics_collector.record_certificate_provisioning(result)
        return bundle

    async def _get_or_create(
        self, name: str, namespace: str
    ) -> tuple[CertificateBundle, str]:
        secret = await self.store.get(name, namespace)
        result = "existing"
        if secret is None:
            logger.info("Did not find existing secret, creating one")
            generated = create_certs(self.service_name, namespace)
            if await self.store.create(name, namespace, generated.to_secret_data()):
                result = "created"
            else:
                logger.info(f"Secret {namespace}/{name} was created concurrently")
            # Something else might have created it, fetch it one more time
            secret = await self.store.get(name, namespace)
            if secret is None:
                raise MissingCredentialError(
                    f"secret {namespace}/{name} disappeared after creation"
                )
        return CertificateBundle.from_secret_data(secret.data), result


def write_certificate_files(
    bundle: CertificateBundle, cert_dir: str
) -> tuple[Path, Path]:
    """
    Write the serving certificate and key to disk with owner-only permissions.

    Returns:
        Paths of the certificate and key files
    """
    directory = Path(cert_dir)
    directory.mkdir(parents=True, exist_ok=True)
    cert_path = directory / "tls.crt"
    key_path = directory / "tls.key"
    files = ((cert_path, bundle.server_cert), (key_path, bundle.server_key))
    for path, content in files:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
    return cert_path, key_path


def make_tls_context(
    bundle: CertificateBundle,
    client_ca: bytes,
    cert_dir: str,
    require_client_cert: bool = False,
) -> ssl.SSLContext:
    """
    Build the server TLS context.

    Callers are verified against ``client_ca`` (the API server's client CA),
    not against the CA that issued our own certificate. Client certificates
    are only demanded when ``require_client_cert`` is set.
    """
    cert_path, key_path = write_certificate_files(bundle, cert_dir)
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))
    context.load_verify_locations(cadata=client_ca.decode("utf-8"))
    context.verify_mode = ssl.CERT_REQUIRED if require_client_cert else ssl.CERT_NONE
    return context
