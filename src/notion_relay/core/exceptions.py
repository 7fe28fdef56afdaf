"""
Custom exceptions for notion-relay.
"""

from typing import List, Optional


class RelayError(Exception):
    """Base exception for all notion-relay errors."""
    pass


class ConfigError(RelayError):
    """
    Required configuration is missing or invalid.

    Fatal for the whole run; raised before any network work starts.
    """

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class NotionQueryError(RelayError):
    """
    A database query failed.

    Raised when:
    - Notion is unreachable or the request times out
    - The response status is not 2xx
    - The body is not JSON, or is an error object
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SchemaError(RelayError):
    """A page property does not carry the type the store schema expects."""

    def __init__(self, message: str, property_name: str = None):
        super().__init__(message)
        self.property_name = property_name


class RunLockedError(RelayError):
    """Another relay invocation holds the run lock."""

    def __init__(self, message: str, holder: Optional[str] = None):
        super().__init__(message)
        self.holder = holder
