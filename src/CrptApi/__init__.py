# === NAVMAP v1 ===
# {
#   "module": "CrptApi",
#   "purpose": "Package initialization for CrptApi",
#   "sections": []
# }
# === /NAVMAP ===

"""Public API for the rate-limited CRPT document submission client.

This facade exposes the admission gate that bounds how many documents are
sent per rolling time window, the document models, the submission
collaborator, and the error hierarchy shared by all of them.
"""

from __future__ import annotations

from CrptApi.api import CrptApi
from CrptApi.cancellation import CancellationToken, CancellationTokenGroup
from CrptApi.documents import Description, Document, Product
from CrptApi.errors import (
    AcquireCancelledError,
    AcquireTimeoutError,
    CancellationError,
    ConfigurationError,
    CrptApiError,
    SerializationError,
    SubmissionError,
    SubmissionFailure,
    TransportError,
)
from CrptApi.network.submitter import DocumentSubmitter, SubmissionResult
from CrptApi.ratelimit import AdmissionGate, RateSpec, get_admission_gate, parse_rate_string
from CrptApi.settings import CrptSettings, get_settings, load_settings

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CrptApi",
    "AdmissionGate",
    "RateSpec",
    "parse_rate_string",
    "get_admission_gate",
    "CancellationToken",
    "CancellationTokenGroup",
    "Document",
    "Description",
    "Product",
    "DocumentSubmitter",
    "SubmissionResult",
    "CrptSettings",
    "get_settings",
    "load_settings",
    "CrptApiError",
    "ConfigurationError",
    "CancellationError",
    "AcquireCancelledError",
    "AcquireTimeoutError",
    "SubmissionError",
    "SerializationError",
    "TransportError",
    "SubmissionFailure",
]
