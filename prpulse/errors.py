"""Exceptions raised while talking to the GitHub GraphQL API."""

from typing import Optional


class PRPulseError(Exception):
    """Base class for errors that abort a fetch cycle."""


class ConfigurationError(PRPulseError):
    """No credential is configured, so nothing can be fetched."""


class TransportError(PRPulseError):
    """Network failure, timeout or unexpected HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialError(PRPulseError):
    """The token was rejected; the user has to provide a new one."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(CredentialError):
    """HTTP 401: the token is invalid or has expired."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, status_code=401)


class InsufficientScopeError(CredentialError):
    """HTTP 403: the token is valid but lacks a required scope."""

    def __init__(self, message: str = "Token lacks required permissions"):
        super().__init__(message, status_code=403)


class ProtocolError(PRPulseError):
    """The response body was not a usable GraphQL result."""
