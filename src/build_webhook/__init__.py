"""
Build admission webhook - mutating admission gateway for Knative Build resources.

This package intercepts create/update requests for Build, BuildTemplate and
ClusterBuildTemplate resources and provides:
- Strict decoding of admitted resources
- Spec generation bumping via structural diff
- Per-kind defaulting and validation
- Self-managed TLS identity and webhook registration
"""

__version__ = "0.1.0"
