"""
Custom exceptions for the GotNodes metrics proxy
"""

from typing import Optional


class GotNodesException(Exception):
    """Base exception for gotnodes"""
    pass


class ConfigurationError(GotNodesException):
    """Required configuration (usually an upstream credential) is missing"""

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        super().__init__(message or f"Missing {setting} env var")


class UpstreamError(GotNodesException):
    """Non-2xx, unreachable or malformed response from a third-party provider"""

    def __init__(self, provider: str, message: str, status: Optional[int] = None,
                 body: Optional[str] = None, url: Optional[str] = None):
        self.provider = provider
        self.status = status
        self.body = body
        self.url = url
        detail = f"{provider} failed"
        if status is not None:
            detail += f" ({status})"
        super().__init__(f"{detail}: {message}")


class ValidationError(GotNodesException):
    """Malformed caller input"""
    pass


class PartialRecordError(GotNodesException):
    """A single identifier in a batch could not be resolved"""

    def __init__(self, identifier: str, message: str):
        self.identifier = identifier
        self.reason = message
        super().__init__(f"{identifier}: {message}")
