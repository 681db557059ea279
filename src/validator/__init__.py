"""Schema validation of Kubernetes manifests via kubeconform."""

from .batch import ManifestRecord, ManifestStatus, ValidationBatch, ValidationTally
from .kubeconform import SchemaCheck, SchemaValidator, ValidationOutcome, classify_validation

__all__ = [
    "ManifestRecord",
    "ManifestStatus",
    "SchemaCheck",
    "SchemaValidator",
    "ValidationBatch",
    "ValidationOutcome",
    "ValidationTally",
    "classify_validation",
]
