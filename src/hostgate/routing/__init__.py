"""Subdomain extraction and dispatch."""

from .host import (
    HostError,
    MissingHost,
    InvalidHeaderEncoding,
    EmptyHost,
    decode_host,
    extract_subdomain,
)
from .router import SubdomainRouter, NOT_FOUND_BODY, error_response

__all__ = [
    "HostError",
    "MissingHost",
    "InvalidHeaderEncoding",
    "EmptyHost",
    "decode_host",
    "extract_subdomain",
    "SubdomainRouter",
    "NOT_FOUND_BODY",
    "error_response",
]
