"""Error taxonomy for the signing and verification engine.

Messages must never carry key bytes, signature values or the signing input;
callers log ``str(exc)`` as is.
"""
from __future__ import annotations


class EsiaCryptoError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(EsiaCryptoError):
    """Required cryptographic material is missing or empty."""


class KeyImportError(EsiaCryptoError):
    """Key bytes are malformed or belong to another suite."""


class SigningError(EsiaCryptoError):
    """The signing operation itself failed."""


class MalformedTokenError(EsiaCryptoError):
    """A compact token does not split into three valid segments."""


class SignatureMismatch(EsiaCryptoError):
    """Verification ran to completion and the signature did not match."""


class UnsupportedSuiteError(EsiaCryptoError, ValueError):
    """The suite tag is not one the engine table knows."""


class TokenExchangeError(EsiaCryptoError):
    """The provider token endpoint answered with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "EsiaCryptoError",
    "ConfigurationError",
    "KeyImportError",
    "SigningError",
    "MalformedTokenError",
    "SignatureMismatch",
    "UnsupportedSuiteError",
    "TokenExchangeError",
]
