#!/usr/bin/env python3
"""
Response Format helpers
Error envelope shared by the HTTP API and the CLI
"""

import json
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError, GotNodesException, UpstreamError, ValidationError

# Exception class -> (HTTP status, envelope error code)
ERROR_STATUS = [
    (ValidationError, 400, "invalid_request"),
    (ConfigurationError, 500, "configuration_error"),
    (UpstreamError, 502, "upstream_failed"),
]


def error_response(error: str, message: Optional[str] = None) -> Dict[str, Any]:
    """Create the standard error envelope"""
    envelope = {"error": error}
    if message:
        envelope["message"] = message
    return envelope


def classify_error(exc: GotNodesException):
    """Return (status, envelope) for a library exception"""
    for cls, status, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return status, error_response(code, str(exc))
    return 500, error_response("internal_error", str(exc))


def format_json(response: Any, pretty: bool = False) -> str:
    """Format response as JSON string"""
    if pretty:
        return json.dumps(response, indent=2, default=str)
    return json.dumps(response, separators=(',', ':'), default=str)
