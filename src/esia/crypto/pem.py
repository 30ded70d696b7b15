"""PEM to DER conversion for keys and certificate bundles."""
from __future__ import annotations

from typing import List

from asn1crypto import pem

from .errors import ConfigurationError


def _as_bytes(data: str | bytes) -> bytes:
    return data.encode("ascii") if isinstance(data, str) else data


def pem_to_der(data: str | bytes, expected: str | None = None) -> bytes:
    """Return the DER body of the first PEM block in ``data``.

    Raw DER input is passed through. ``expected`` checks the armor label,
    e.g. ``"PRIVATE KEY"`` or ``"PUBLIC KEY"``.
    """
    raw = _as_bytes(data)
    if not pem.detect(raw):
        if raw[:1] == b"\x30":
            return raw
        raise ConfigurationError("input is neither PEM nor DER")
    try:
        label, _headers, der = pem.unarmor(raw)
    except ValueError as e:
        raise ConfigurationError("malformed PEM block") from e
    if expected and label != expected:
        raise ConfigurationError(f"expected PEM {expected!r}, got {label!r}")
    return der


def split_certificates(data: str | bytes) -> List[bytes]:
    """Split a PEM bundle into DER certificates, leaf first, in file order."""
    raw = _as_bytes(data)
    if not pem.detect(raw):
        raise ConfigurationError("certificate bundle is not PEM")
    out: List[bytes] = []
    try:
        for label, _headers, der in pem.unarmor(raw, multiple=True):
            if label == "CERTIFICATE" and der:
                out.append(der)
    except ValueError as e:
        raise ConfigurationError("malformed PEM certificate bundle") from e
    if not out:
        raise ConfigurationError("no certificates found in bundle")
    return out


__all__ = ["pem_to_der", "split_certificates"]
