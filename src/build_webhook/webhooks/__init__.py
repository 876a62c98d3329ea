"""
Admission webhook for the build.knative.dev resources.

This package provides the mutating admission pipeline for Build,
BuildTemplate and ClusterBuildTemplate resources: decoding, generation
bookkeeping, defaulting and validation, and the HTTPS server that exchanges
AdmissionReview envelopes with the API server.
"""
