"""Validation of model output against structural schemas."""

from .parsing import parse_json_text
from .types import RejectionKind, RejectionReason, ValidatedValue
from .validator import check_conformance, observed_kind, validate_response

__all__ = [
    "RejectionKind",
    "RejectionReason",
    "ValidatedValue",
    "check_conformance",
    "observed_kind",
    "parse_json_text",
    "validate_response",
]
