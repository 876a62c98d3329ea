"""
Models package - Pydantic models for the admission webhook.

Defines data models for:
- The AdmissionReview request/response envelope
- Build, BuildTemplate and ClusterBuildTemplate documents
- Shared Kubernetes object metadata
"""
