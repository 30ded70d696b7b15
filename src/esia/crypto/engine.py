"""Crypto engine abstraction.

Each signature suite is served by one engine object exposing the same
surface: key import, sign, verify and the fixed algorithm identifiers the
CMS encoder needs. Engines are stateless; callers pass the engine they
picked down the whole call instead of registering it anywhere.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Protocol, runtime_checkable

from .suites import SignatureSuite


@dataclass(frozen=True)
class KeyMaterial:
    """Imported private key bound to one suite."""

    suite: SignatureSuite
    key: Any = field(repr=False)


@dataclass(frozen=True)
class TrustedPublicKey:
    """Imported verification key bound to one suite."""

    suite: SignatureSuite
    key: Any = field(repr=False)


@dataclass(frozen=True)
class SignatureParameters:
    """AlgorithmIdentifier values for a SignerInfo, in asn1crypto dict form."""

    signature_algorithm: Dict[str, Any]
    digest_algorithm: Dict[str, Any]


@runtime_checkable
class CryptoEngine(Protocol):
    suite: SignatureSuite
    hash_name: str

    def import_private_key(self, pkcs8_der: bytes) -> KeyMaterial: ...
    def import_public_key(self, spki_der: bytes) -> TrustedPublicKey: ...
    def sign(self, key: KeyMaterial, message: bytes) -> bytes: ...
    def verify(self, public_key: TrustedPublicKey, signature: bytes, message: bytes) -> bool: ...
    def algorithm_identifier_for(self, kind: str) -> str: ...
    def signature_parameters_for(self, key: KeyMaterial, hash_name: str) -> SignatureParameters: ...


__all__ = ["CryptoEngine", "KeyMaterial", "TrustedPublicKey", "SignatureParameters"]
