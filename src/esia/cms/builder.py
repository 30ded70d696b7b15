"""Client secret builder.

The provider does not accept a static ``client_secret``: every authorization
and token request carries a CMS SignedData over
``scope + timestamp + client_id + state`` which the provider rebuilds and
checks on its side. Layout of the produced message:

  ContentInfo (signedData)                      indefinite
    [0] EXPLICIT                                indefinite
      SignedData v1                             indefinite
        digestAlgorithms   {suite digest}
        encapContentInfo   data, OCTET STRING(plaintext)
        certificates       full chain as supplied
        signerInfos        one SignerInfo v1, issuer+serial, no signed attrs

Everything below the SignedData is plain DER.
"""
from __future__ import annotations

import asyncio
import base64
import time
from dataclasses import dataclass
from typing import List, Sequence

from asn1crypto import cms, core, x509

from ..crypto.codec import url_safe
from ..crypto.engine import CryptoEngine, KeyMaterial
from ..crypto.errors import ConfigurationError, EsiaCryptoError
from ..crypto.registry import get_engine
from ..crypto.suites import SignatureSuite
from ..obs.prom import observe_client_secret
from ..utils.logging import get_logger
from .ber import encode_element, force_indefinite, insert_child

OID_DATA = "1.2.840.113549.1.7.1"
OID_SIGNED_DATA = "1.2.840.113549.1.7.2"

# ContentInfo -> [0] content -> SignedData
INDEFINITE_PATH = (1, 0)
# SignedData children: version, digestAlgorithms, encapContentInfo, certificates
CERTIFICATES_INDEX = 3
CERTIFICATES_TAG = b"\xa0"

log = get_logger("cms")


@dataclass(frozen=True)
class SignerCertificates:
    sid: cms.SignerIdentifier
    certificates: List[x509.Certificate]


def compose_message(scope: str, timestamp: str, client_id: str, state: str) -> str:
    # Field order and the missing separators are part of the provider contract
    return f"{scope}{timestamp}{client_id}{state}"


def load_signer_certificates(certificate_chain: Sequence[bytes]) -> SignerCertificates:
    if not certificate_chain:
        raise ConfigurationError("certificate chain is empty")
    certs: List[x509.Certificate] = []
    for i, der in enumerate(certificate_chain):
        if not der:
            raise ConfigurationError(f"certificate #{i} is empty")
        try:
            cert = x509.Certificate.load(bytes(der))
            # force the lazy parse so garbage fails here, not at dump time
            cert["tbs_certificate"]["serial_number"].native
        except ValueError as e:
            raise ConfigurationError(f"certificate #{i} is not valid DER") from e
        certs.append(cert)
    leaf = certs[0]
    sid = cms.SignerIdentifier(
        name="issuer_and_serial_number",
        value=cms.IssuerAndSerialNumber(
            {"issuer": leaf.issuer, "serial_number": leaf.serial_number}
        ),
    )
    return SignerCertificates(sid=sid, certificates=certs)


def _fresh(alg: dict) -> dict:
    return {k: (v.copy() if isinstance(v, core.Asn1Value) else v) for k, v in alg.items()}


def encode_signed_data(
    message: bytes,
    signer: SignerCertificates,
    key: KeyMaterial,
    signature: bytes,
    engine: CryptoEngine,
) -> bytes:
    """Assemble the ContentInfo and apply the provider's length forms."""
    params = engine.signature_parameters_for(key, engine.hash_name)
    signer_info = cms.SignerInfo(
        {
            "version": "v1",
            "sid": signer.sid,
            "digest_algorithm": _fresh(params.digest_algorithm),
            "signature_algorithm": _fresh(params.signature_algorithm),
            "signature": signature,
        }
    )
    signed_data = cms.SignedData(
        {
            "version": "v1",
            "digest_algorithms": [_fresh(params.digest_algorithm)],
            "encap_content_info": {"content_type": OID_DATA, "content": message},
            "signer_infos": [signer_info],
        }
    )
    content_info = cms.ContentInfo({"content_type": OID_SIGNED_DATA, "content": signed_data})
    # Chain keeps the supplied order, leaf first; asn1crypto would sort the SET OF
    certificates = encode_element(CERTIFICATES_TAG, b"".join(c.dump() for c in signer.certificates))
    der = insert_child(content_info.dump(), INDEFINITE_PATH, CERTIFICATES_INDEX, certificates)
    return force_indefinite(der, INDEFINITE_PATH)


def sign_message(
    message: bytes,
    certificate_chain: Sequence[bytes],
    private_key_der: bytes,
    engine: CryptoEngine,
) -> bytes:
    """Synchronous build of the SignedMessage bytes with an explicit engine."""
    signer = load_signer_certificates(certificate_chain)
    key = engine.import_private_key(private_key_der)
    signature = engine.sign(key, message)
    return encode_signed_data(message, signer, key, signature, engine)


def to_client_secret(signed_message: bytes) -> str:
    return url_safe(base64.b64encode(signed_message).decode("ascii"))


async def build_signed_message(
    message: bytes,
    certificate_chain: Sequence[bytes],
    private_key_der: bytes,
    engine: CryptoEngine,
) -> bytes:
    signer = load_signer_certificates(certificate_chain)
    key = await asyncio.to_thread(engine.import_private_key, private_key_der)
    signature = await asyncio.to_thread(engine.sign, key, message)
    return encode_signed_data(message, signer, key, signature, engine)


async def build_client_secret(
    scope: str,
    timestamp: str,
    client_id: str,
    state: str,
    certificate_chain: Sequence[bytes],
    private_key: bytes,
    suite: SignatureSuite | str = SignatureSuite.RSA_SHA256,
) -> str:
    """Return the URL-safe base64 client secret for one request."""
    engine = get_engine(suite)
    message = compose_message(scope, timestamp, client_id, state).encode("utf-8")
    start = time.time()
    try:
        signed = await build_signed_message(message, certificate_chain, private_key, engine)
    except EsiaCryptoError as e:
        observe_client_secret(suite=engine.suite.value, result=type(e).__name__, latency_ms=(time.time() - start) * 1000)
        log.warning(f"client secret failed suite={engine.suite.value} error={type(e).__name__}")
        raise
    latency_ms = (time.time() - start) * 1000
    observe_client_secret(suite=engine.suite.value, result="ok", latency_ms=latency_ms)
    log.info(f"client secret built suite={engine.suite.value} bytes={len(signed)} latency_ms={latency_ms:.1f}")
    return to_client_secret(signed)


__all__ = [
    "compose_message",
    "load_signer_certificates",
    "encode_signed_data",
    "sign_message",
    "build_signed_message",
    "build_client_secret",
    "to_client_secret",
    "OID_DATA",
    "OID_SIGNED_DATA",
    "INDEFINITE_PATH",
]
