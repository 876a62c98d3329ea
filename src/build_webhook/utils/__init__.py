"""
Utils package - Kubernetes-facing helpers for the build webhook.

Contains helper modules for:
- Kubernetes client configuration and lookups
- Serving certificate provisioning
- Webhook configuration registration
"""

from build_webhook.utils.certificates import CertificateProvisioner, create_certs
from build_webhook.utils.registration import RegistrationReconciler

__all__ = [
    "CertificateProvisioner",
    "RegistrationReconciler",
    "create_certs",
]
