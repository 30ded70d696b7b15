import base64
import datetime
import json

import pytest
from cryptography import x509 as cx509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from esia.crypto.gost import (
    GostEngine,
    derive_public_point,
    encode_private_key,
    encode_public_key,
)

# GOST R 34.10-2012 example private key, valid on tc26 paramSetB
GOST_SCALAR = bytes.fromhex("7a929ade789bb9be10ed359dd39a72c11b60961f49397eee1d19ce9891ec3b28")


def _name(cn: str) -> cx509.Name:
    return cx509.Name([cx509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _cert(subject: str, issuer: str, public_key, signing_key, serial: int) -> bytes:
    cert = (
        cx509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(public_key)
        .serial_number(serial)
        .not_valid_before(datetime.datetime(2024, 1, 1))
        .not_valid_after(datetime.datetime(2034, 1, 1))
        .sign(signing_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def make_token(header: dict, claims: dict, sign) -> str:
    h = b64url(json.dumps(header).encode())
    p = b64url(json.dumps(claims).encode())
    sig = sign(f"{h}.{p}".encode())
    return f"{h}.{p}.{b64url(sig)}"


def to_pem(der: bytes, label: str) -> str:
    body = base64.encodebytes(der).decode()
    return f"-----BEGIN {label}-----\n{body}-----END {label}-----\n"


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ca_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_pkcs8(rsa_key) -> bytes:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def rsa_spki(rsa_key) -> bytes:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture(scope="session")
def cert_chain(rsa_key, ca_key) -> list:
    leaf = _cert("esia-client", "test-ca", rsa_key.public_key(), ca_key, serial=0x1234ABCD)
    root = _cert("test-ca", "test-ca", ca_key.public_key(), ca_key, serial=1)
    return [leaf, root]


@pytest.fixture(scope="session")
def gost_pkcs8() -> bytes:
    return encode_private_key(GOST_SCALAR)


@pytest.fixture(scope="session")
def gost_spki() -> bytes:
    return encode_public_key(derive_public_point(GOST_SCALAR, "1.2.643.7.1.2.1.1.2"))


@pytest.fixture()
def rsa_signer(rsa_key):
    return lambda data: rsa_key.sign(data, padding.PKCS1v15(), hashes.SHA256())


@pytest.fixture()
def gost_signer(gost_pkcs8):
    engine = GostEngine()
    key = engine.import_private_key(gost_pkcs8)
    return lambda data: engine.sign(key, data)
