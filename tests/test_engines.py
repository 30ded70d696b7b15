import pytest
from asn1crypto import core

from esia.crypto.engine import CryptoEngine, KeyMaterial
from esia.crypto.errors import KeyImportError, SigningError, UnsupportedSuiteError
from esia.crypto.gost import GostEngine, derive_public_point, encode_public_key
from esia.crypto.registry import ENGINES, get_engine
from esia.crypto.rsa import RsaEngine
from esia.crypto.suites import SignatureSuite, parse_suite, suite_for_jws_alg

from conftest import GOST_SCALAR


def test_parse_suite_aliases():
    assert parse_suite("rsa") is SignatureSuite.RSA_SHA256
    assert parse_suite("GOST") is SignatureSuite.GOST34_10_2012_256
    assert parse_suite("GOST34_10_2012_256") is SignatureSuite.GOST34_10_2012_256
    assert parse_suite(None) is SignatureSuite.RSA_SHA256


def test_unknown_suite_rejected():
    with pytest.raises(UnsupportedSuiteError):
        get_engine("dsa")
    # also usable as a plain ValueError
    with pytest.raises(ValueError):
        parse_suite("ed25519")


def test_engine_table_is_closed():
    assert set(ENGINES) == set(SignatureSuite)
    for suite, engine in ENGINES.items():
        assert isinstance(engine, CryptoEngine)
        assert engine.suite is suite


def test_suite_from_jws_alg():
    assert suite_for_jws_alg("GOST3410_2012_256") is SignatureSuite.GOST34_10_2012_256
    assert suite_for_jws_alg("RS256") is SignatureSuite.RSA_SHA256
    assert suite_for_jws_alg(None) is SignatureSuite.RSA_SHA256
    assert suite_for_jws_alg("gost3410_2012_256") is SignatureSuite.RSA_SHA256


def test_oid_table():
    rsa_e, gost_e = RsaEngine(), GostEngine()
    assert rsa_e.algorithm_identifier_for("signature") == "1.2.840.113549.1.1.11"
    assert rsa_e.algorithm_identifier_for("digest") == "2.16.840.1.101.3.4.2.1"
    assert gost_e.algorithm_identifier_for("signature") == "1.2.643.7.1.1.1.1"
    assert gost_e.algorithm_identifier_for("digest") == "1.2.643.7.1.1.2.2"
    with pytest.raises(ValueError):
        gost_e.algorithm_identifier_for("mac")


def test_gost_signature_parameters_forced(gost_pkcs8):
    engine = GostEngine()
    key = engine.import_private_key(gost_pkcs8)
    params = engine.signature_parameters_for(key, "GOST R 34.11-256")
    assert params.signature_algorithm == {"algorithm": "1.2.643.7.1.1.1.1"}
    assert params.digest_algorithm["algorithm"] == "1.2.643.7.1.1.2.2"
    assert isinstance(params.digest_algorithm["parameters"], core.Null)
    with pytest.raises(SigningError):
        engine.signature_parameters_for(key, "SHA-256")


def test_rsa_signature_parameters(rsa_pkcs8):
    engine = RsaEngine()
    key = engine.import_private_key(rsa_pkcs8)
    params = engine.signature_parameters_for(key, "SHA-256")
    assert params.signature_algorithm["algorithm"] == "1.2.840.113549.1.1.11"
    assert isinstance(params.signature_algorithm["parameters"], core.Null)
    with pytest.raises(SigningError):
        engine.signature_parameters_for(key, "GOST R 34.11-256")


def test_rsa_roundtrip(rsa_pkcs8, rsa_spki):
    engine = RsaEngine()
    key = engine.import_private_key(rsa_pkcs8)
    pub = engine.import_public_key(rsa_spki)
    sig = engine.sign(key, b"message")
    assert engine.sign(key, b"message") == sig  # PKCS1 v1.5 is deterministic
    assert engine.verify(pub, sig, b"message") is True
    assert engine.verify(pub, sig, b"messagf") is False


def test_gost_roundtrip(gost_pkcs8, gost_spki):
    engine = GostEngine()
    key = engine.import_private_key(gost_pkcs8)
    pub = engine.import_public_key(gost_spki)
    assert key.key.scalar == GOST_SCALAR
    sig = engine.sign(key, b"message")
    assert len(sig) == 64
    assert engine.verify(pub, sig, b"message") is True
    tampered = bytes([sig[0] ^ 0x01]) + sig[1:]
    assert engine.verify(pub, tampered, b"message") is False
    assert engine.verify(pub, sig[:10], b"message") is False


def test_gost_public_key_other_param_set_does_not_verify(gost_pkcs8):
    engine = GostEngine()
    key = engine.import_private_key(gost_pkcs8)
    point = derive_public_point(GOST_SCALAR, "1.2.643.7.1.2.1.1.2")
    # same point declared on another curve
    pub = engine.import_public_key(encode_public_key(point, "1.2.643.7.1.2.1.1.3"))
    assert engine.verify(pub, engine.sign(key, b"m"), b"m") is False


def test_rsa_rejects_gost_key(gost_pkcs8, gost_spki):
    engine = RsaEngine()
    with pytest.raises(KeyImportError):
        engine.import_private_key(gost_pkcs8)
    with pytest.raises(KeyImportError):
        engine.import_public_key(gost_spki)


def test_gost_rejects_rsa_key(rsa_pkcs8, rsa_spki):
    engine = GostEngine()
    with pytest.raises(KeyImportError):
        engine.import_private_key(rsa_pkcs8)
    with pytest.raises(KeyImportError):
        engine.import_public_key(rsa_spki)


@pytest.mark.parametrize("engine", [RsaEngine(), GostEngine()])
def test_garbage_key_bytes(engine):
    with pytest.raises(KeyImportError):
        engine.import_private_key(b"\x30\x03\x02\x01")
    with pytest.raises(KeyImportError):
        engine.import_public_key(b"not der at all")


def test_sign_with_key_of_other_suite(rsa_pkcs8):
    key = RsaEngine().import_private_key(rsa_pkcs8)
    with pytest.raises(SigningError):
        GostEngine().sign(key, b"m")
    foreign = KeyMaterial(suite=SignatureSuite.GOST34_10_2012_256, key=None)
    with pytest.raises(SigningError):
        RsaEngine().sign(foreign, b"m")


def test_key_material_repr_hides_key(rsa_pkcs8):
    key = RsaEngine().import_private_key(rsa_pkcs8)
    assert "RSAPrivateKey" not in repr(key)
