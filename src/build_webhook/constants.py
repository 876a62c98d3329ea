"""
Constants used throughout the build admission webhook.

This module defines all constant values used by the webhook including:
- API group, version and resources routed to the webhook
- Secret keys for the serving certificate material
- Wire format constants of the AdmissionReview envelope
- Error message templates
"""

# API group of the admitted resources
BUILD_API_GROUP = "build.knative.dev"
BUILD_API_VERSION = "v1alpha1"
BUILD_RESOURCES = ["builds", "buildtemplates", "clusterbuildtemplates"]

# Kinds handled by the admission pipeline
KIND_BUILD = "Build"
KIND_BUILD_TEMPLATE = "BuildTemplate"
KIND_CLUSTER_BUILD_TEMPLATE = "ClusterBuildTemplate"

# Operations routed to the webhook
OPERATION_CREATE = "CREATE"
OPERATION_UPDATE = "UPDATE"
OPERATION_DELETE = "DELETE"
OPERATION_CONNECT = "CONNECT"
ADMITTED_OPERATIONS = (OPERATION_CREATE, OPERATION_UPDATE)

# Keys of the serving certificate secret
SECRET_SERVER_KEY = "server-key.pem"
SECRET_SERVER_CERT = "server-cert.pem"
SECRET_CA_CERT = "ca-cert.pem"

# Aggregated API server client CA (provided by Kubernetes, not by us)
APISERVER_CA_CONFIGMAP = "extension-apiserver-authentication"
APISERVER_CA_CONFIGMAP_NAMESPACE = "kube-system"
APISERVER_CA_CONFIGMAP_KEY = "requestheader-client-ca-file"

# Generated certificate parameters
CERT_KEY_SIZE = 2048
CERT_VALIDITY_DAYS = 365

# AdmissionReview wire format
ADMISSION_REVIEW_KIND = "AdmissionReview"
ADMISSION_API_VERSION_V1 = "admission.k8s.io/v1"
ADMISSION_API_VERSION_V1BETA1 = "admission.k8s.io/v1beta1"
ADMISSION_REVIEW_VERSIONS = ["v1", "v1beta1"]
PATCH_TYPE_JSON_PATCH = "JSONPatch"
CONTENT_TYPE_JSON = "application/json"

# JSON pointer of the spec generation counter
GENERATION_PATH = "/spec/generation"

# Defaults applied by the Build defaulter
DEFAULT_BUILD_TIMEOUT = "10m"
MAXIMUM_BUILD_TIMEOUT_SECONDS = 24 * 60 * 60

# Error message templates
ERROR_UNHANDLED_KIND = 'unhandled kind: "{}"'
ERROR_DECODE_NEW = "cannot decode incoming new object: {}"
ERROR_DECODE_OLD = "cannot decode incoming old object: {}"
ERROR_GENERATION = "Failed to update generation: {}"
ERROR_INVALID_CONTENT_TYPE = "invalid Content-Type, want `application/json`"
ERROR_DECODE_BODY = "could not decode body: {}"
ERROR_ENCODE_RESPONSE = "could not encode response: {}"
