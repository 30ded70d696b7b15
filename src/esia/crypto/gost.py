"""GOST R 34.10-2012 (256 bit) / GOST R 34.11-2012 (Streebog-256) engine.

Arithmetic comes from ``gostcrypto``; key containers are read and written
with ``asn1crypto`` because the generic key loaders do not know the
national algorithm identifiers.

Key container conventions:
  PKCS#8  privateKey OCTET STRING holds either an OCTET STRING with the
          little-endian scalar or an INTEGER (both are seen in the wild).
  SPKI    subjectPublicKey BIT STRING holds an OCTET STRING of 64 bytes,
          x || y, each coordinate little-endian.
gostcrypto itself works on big-endian values, conversion happens here.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from asn1crypto import cms, core
from gostcrypto import gosthash, gostsignature

from .engine import KeyMaterial, SignatureParameters, TrustedPublicKey
from .errors import KeyImportError, SigningError
from .suites import SignatureSuite

# Fixed identifiers required by the provider
OID_GOST3410_2012_256 = "1.2.643.7.1.1.1.1"
OID_GOST3411_2012_256 = "1.2.643.7.1.1.2.2"
# Older containers label 256-bit keys with the 2001 key algorithm
OID_GOST3410_2001 = "1.2.643.2.2.19"

HASH_NAME = "GOST R 34.11-256"
KEY_SIZE = 32

_OIDS = {
    "signature": OID_GOST3410_2012_256,
    "digest": OID_GOST3411_2012_256,
}

_KEY_ALGORITHMS = {OID_GOST3410_2012_256, OID_GOST3410_2001}

# publicKeyParamSet OID -> gostcrypto curve name (R 1323565.1.024-2019 table)
PARAM_SETS = {
    "1.2.643.7.1.2.1.1.1": "id-tc26-gost-3410-2012-256-paramSetA",
    "1.2.643.7.1.2.1.1.2": "id-tc26-gost-3410-2012-256-paramSetB",
    "1.2.643.7.1.2.1.1.3": "id-tc26-gost-3410-2012-256-paramSetC",
    "1.2.643.7.1.2.1.1.4": "id-tc26-gost-3410-2012-256-paramSetD",
    # CryptoPro sets are the same curves as tc26 B, C, D
    "1.2.643.2.2.35.1": "id-tc26-gost-3410-2012-256-paramSetB",
    "1.2.643.2.2.35.2": "id-tc26-gost-3410-2012-256-paramSetC",
    "1.2.643.2.2.35.3": "id-tc26-gost-3410-2012-256-paramSetD",
    "1.2.643.2.2.36.0": "id-tc26-gost-3410-2012-256-paramSetB",
    "1.2.643.2.2.36.1": "id-tc26-gost-3410-2012-256-paramSetD",
}
DEFAULT_PARAM_SET = "1.2.643.7.1.2.1.1.2"


class GostKeyParameters(core.Sequence):
    _fields = [
        ("public_key_param_set", core.ObjectIdentifier),
        ("digest_param_set", core.ObjectIdentifier, {"optional": True}),
        ("encryption_param_set", core.ObjectIdentifier, {"optional": True}),
    ]


class GostAlgorithmIdentifier(core.Sequence):
    _fields = [
        ("algorithm", core.ObjectIdentifier),
        ("parameters", core.Any, {"optional": True}),
    ]


class GostPrivateKeyInfo(core.Sequence):
    _fields = [
        ("version", core.Integer),
        ("private_key_algorithm", GostAlgorithmIdentifier),
        ("private_key", core.OctetString),
        ("attributes", cms.CMSAttributes, {"implicit": 0, "optional": True}),
    ]


class GostPublicKeyInfo(core.Sequence):
    _fields = [
        ("algorithm", GostAlgorithmIdentifier),
        ("public_key", core.OctetBitString),
    ]


@dataclass(frozen=True)
class GostPrivateKey:
    param_set: str
    scalar: bytes  # big-endian, KEY_SIZE bytes


@dataclass(frozen=True)
class GostPublicKey:
    param_set: str
    point: bytes  # big-endian x || y


def streebog256(data: bytes) -> bytes:
    h = gosthash.new("streebog256")
    h.update(data)
    return bytes(h.digest())


def _curve(param_set: str):
    try:
        name = PARAM_SETS[param_set]
    except KeyError:
        raise KeyImportError(f"unsupported GOST parameter set {param_set}") from None
    return gostsignature.CURVES_R_1323565_1_024_2019[name]


def _signer(param_set: str):
    return gostsignature.new(gostsignature.MODE_256, _curve(param_set))


def _param_set(alg: GostAlgorithmIdentifier) -> str:
    oid = alg["algorithm"].dotted
    if oid not in _KEY_ALGORITHMS:
        raise KeyImportError(f"key algorithm {oid} is not GOST R 34.10-2012-256")
    raw = alg["parameters"].dump()
    if not raw:
        return DEFAULT_PARAM_SET
    if raw[0] == 0x06:
        return core.ObjectIdentifier.load(raw).dotted
    return GostKeyParameters.load(raw)["public_key_param_set"].dotted


def _unwrap_scalar(octets: bytes) -> bytes:
    if len(octets) == KEY_SIZE:
        value = int.from_bytes(octets, "little")
    elif octets[:1] == b"\x04":
        value = int.from_bytes(core.OctetString.load(octets).native, "little")
    elif octets[:1] == b"\x02":
        value = core.Integer.load(octets).native
    else:
        raise KeyImportError("unrecognised GOST private key encoding")
    if value <= 0 or value.bit_length() > KEY_SIZE * 8:
        raise KeyImportError("GOST private key out of range")
    return value.to_bytes(KEY_SIZE, "big")


def _unwrap_point(octets: bytes) -> bytes:
    if octets[:1] == b"\x04" and len(octets) != 2 * KEY_SIZE:
        octets = core.OctetString.load(octets).native
    if len(octets) != 2 * KEY_SIZE:
        raise KeyImportError("GOST public key must be 64 bytes")
    x_le, y_le = octets[:KEY_SIZE], octets[KEY_SIZE:]
    return x_le[::-1] + y_le[::-1]


def _key_parameters(param_set: str) -> GostKeyParameters:
    return GostKeyParameters(
        {"public_key_param_set": param_set, "digest_param_set": OID_GOST3411_2012_256}
    )


def derive_public_point(scalar: bytes, param_set: str) -> bytes:
    """Return the big-endian ``x || y`` public point for a private scalar."""
    return bytes(_signer(param_set).public_key_generate(bytearray(scalar)))


def generate_private_scalar(param_set: str = DEFAULT_PARAM_SET) -> bytes:
    """Random big-endian scalar in ``[1, q)`` for the curve of ``param_set``."""
    q = _curve(param_set)["q"]
    q = int.from_bytes(q, "big") if isinstance(q, (bytes, bytearray)) else int(q)
    while True:
        value = int.from_bytes(os.urandom(KEY_SIZE), "big") % q
        if value:
            return value.to_bytes(KEY_SIZE, "big")


def encode_private_key(scalar: bytes, param_set: str = DEFAULT_PARAM_SET) -> bytes:
    """PKCS#8 DER for a big-endian private scalar."""
    inner = core.OctetString(scalar[::-1]).dump()
    return GostPrivateKeyInfo(
        {
            "version": 0,
            "private_key_algorithm": {
                "algorithm": OID_GOST3410_2012_256,
                "parameters": _key_parameters(param_set),
            },
            "private_key": inner,
        }
    ).dump()


def encode_public_key(point: bytes, param_set: str = DEFAULT_PARAM_SET) -> bytes:
    """SPKI DER for a big-endian ``x || y`` public point."""
    x_be, y_be = point[:KEY_SIZE], point[KEY_SIZE:]
    inner = core.OctetString(x_be[::-1] + y_be[::-1]).dump()
    return GostPublicKeyInfo(
        {
            "algorithm": {
                "algorithm": OID_GOST3410_2012_256,
                "parameters": _key_parameters(param_set),
            },
            "public_key": inner,
        }
    ).dump()


class GostEngine:
    suite = SignatureSuite.GOST34_10_2012_256
    hash_name = HASH_NAME

    def import_private_key(self, pkcs8_der: bytes) -> KeyMaterial:
        try:
            info = GostPrivateKeyInfo.load(pkcs8_der)
            param_set = _param_set(info["private_key_algorithm"])
            scalar = _unwrap_scalar(info["private_key"].native)
        except KeyImportError:
            raise
        except (ValueError, TypeError, KeyError) as e:
            raise KeyImportError("cannot load PKCS#8 private key for GOST suite") from e
        _curve(param_set)
        return KeyMaterial(suite=self.suite, key=GostPrivateKey(param_set=param_set, scalar=scalar))

    def import_public_key(self, spki_der: bytes) -> TrustedPublicKey:
        try:
            info = GostPublicKeyInfo.load(spki_der)
            param_set = _param_set(info["algorithm"])
            point = _unwrap_point(info["public_key"].native)
        except KeyImportError:
            raise
        except (ValueError, TypeError, KeyError) as e:
            raise KeyImportError("cannot load SPKI public key for GOST suite") from e
        _curve(param_set)
        return TrustedPublicKey(suite=self.suite, key=GostPublicKey(param_set=param_set, point=point))

    def sign(self, key: KeyMaterial, message: bytes) -> bytes:
        if key.suite is not self.suite:
            raise SigningError(f"key bound to {key.suite.value}, engine is {self.suite.value}")
        digest = streebog256(message)
        try:
            signer = _signer(key.key.param_set)
            return bytes(signer.sign(bytearray(key.key.scalar), bytearray(digest)))
        except KeyImportError as e:
            raise SigningError("GOST signing failed: bad parameter set") from e
        except Exception as e:  # gostcrypto raises its own GOSTSignatureError
            raise SigningError("GOST signing failed") from e

    def verify(self, public_key: TrustedPublicKey, signature: bytes, message: bytes) -> bool:
        if public_key.suite is not self.suite:
            raise KeyImportError(f"key bound to {public_key.suite.value}, engine is {self.suite.value}")
        if len(signature) != 2 * KEY_SIZE:
            return False
        digest = streebog256(message)
        signer = _signer(public_key.key.param_set)
        try:
            return bool(signer.verify(bytearray(public_key.key.point), bytearray(digest), bytearray(signature)))
        except Exception:  # malformed point or signature values
            return False

    def algorithm_identifier_for(self, kind: str) -> str:
        try:
            return _OIDS[kind]
        except KeyError:
            raise ValueError(f"unknown algorithm kind: {kind}") from None

    def signature_parameters_for(self, key: KeyMaterial, hash_name: str) -> SignatureParameters:
        # Provider expects exactly this pair, a generic lookup would pick other defaults
        if hash_name.upper() not in (HASH_NAME.upper(), "STREEBOG256"):
            raise SigningError(f"GOST suite signs with {HASH_NAME} only, got {hash_name}")
        return SignatureParameters(
            signature_algorithm={"algorithm": self.algorithm_identifier_for("signature")},
            digest_algorithm={
                "algorithm": self.algorithm_identifier_for("digest"),
                "parameters": core.Null(),
            },
        )


__all__ = [
    "GostEngine",
    "GostPrivateKey",
    "GostPublicKey",
    "streebog256",
    "derive_public_point",
    "generate_private_scalar",
    "encode_private_key",
    "encode_public_key",
    "OID_GOST3410_2012_256",
    "OID_GOST3411_2012_256",
    "PARAM_SETS",
    "DEFAULT_PARAM_SET",
    "HASH_NAME",
]
