"""RSASSA-PKCS1-v1_5 / SHA-256 engine backed by pyca/cryptography."""
from __future__ import annotations

from asn1crypto import core
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .engine import KeyMaterial, SignatureParameters, TrustedPublicKey
from .errors import KeyImportError, SigningError
from .suites import SignatureSuite

OID_SHA256_RSA = "1.2.840.113549.1.1.11"
OID_SHA256 = "2.16.840.1.101.3.4.2.1"

_OIDS = {
    "signature": OID_SHA256_RSA,
    "digest": OID_SHA256,
}


class RsaEngine:
    suite = SignatureSuite.RSA_SHA256
    hash_name = "SHA-256"

    def import_private_key(self, pkcs8_der: bytes) -> KeyMaterial:
        try:
            key = serialization.load_der_private_key(pkcs8_der, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyImportError("cannot load PKCS#8 private key for RSA suite") from e
        if not isinstance(key, rsa.RSAPrivateKey):
            raise KeyImportError("private key is not an RSA key")
        return KeyMaterial(suite=self.suite, key=key)

    def import_public_key(self, spki_der: bytes) -> TrustedPublicKey:
        try:
            key = serialization.load_der_public_key(spki_der)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyImportError("cannot load SPKI public key for RSA suite") from e
        if not isinstance(key, rsa.RSAPublicKey):
            raise KeyImportError("public key is not an RSA key")
        return TrustedPublicKey(suite=self.suite, key=key)

    def sign(self, key: KeyMaterial, message: bytes) -> bytes:
        if key.suite is not self.suite:
            raise SigningError(f"key bound to {key.suite.value}, engine is {self.suite.value}")
        try:
            return key.key.sign(message, padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise SigningError("RSA signing failed") from e

    def verify(self, public_key: TrustedPublicKey, signature: bytes, message: bytes) -> bool:
        if public_key.suite is not self.suite:
            raise KeyImportError(f"key bound to {public_key.suite.value}, engine is {self.suite.value}")
        try:
            public_key.key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
            return True
        except InvalidSignature:
            return False

    def algorithm_identifier_for(self, kind: str) -> str:
        try:
            return _OIDS[kind]
        except KeyError:
            raise ValueError(f"unknown algorithm kind: {kind}") from None

    def signature_parameters_for(self, key: KeyMaterial, hash_name: str) -> SignatureParameters:
        if hash_name.upper().replace("-", "") != "SHA256":
            raise SigningError(f"RSA suite signs with SHA-256 only, got {hash_name}")
        return SignatureParameters(
            signature_algorithm={"algorithm": OID_SHA256_RSA, "parameters": core.Null()},
            digest_algorithm={"algorithm": OID_SHA256, "parameters": core.Null()},
        )


__all__ = ["RsaEngine", "OID_SHA256_RSA", "OID_SHA256"]
