import asyncio

import pytest

from esia.crypto.errors import KeyImportError, MalformedTokenError, SignatureMismatch
from esia.crypto.suites import SignatureSuite
from esia.token.verify import (
    VerificationOutcome,
    parse_token,
    require_verified,
    verify_token,
)

from conftest import b64url, make_token

CLAIMS = {"urn:esia:sbj_id": 1000299654, "scope": "fullname email", "exp": 1537792245}


def _verify(token, key=None):
    return asyncio.run(verify_token(token, key))


def test_rs256_token_verifies(rsa_spki, rsa_signer):
    token = make_token({"alg": "RS256", "typ": "JWT"}, CLAIMS, rsa_signer)
    result = _verify(token, rsa_spki)
    assert result.outcome is VerificationOutcome.VERIFIED
    assert result.verified
    assert result.suite is SignatureSuite.RSA_SHA256
    assert result.claims == CLAIMS
    assert require_verified(result) == CLAIMS


def test_flipped_signature_byte_is_mismatch(rsa_spki, rsa_signer):
    token = make_token({"alg": "RS256"}, CLAIMS, rsa_signer)
    h, p, s = token.split(".")
    sig = parse_token(token).signature
    bad = f"{h}.{p}.{b64url(bytes([sig[0] ^ 0xFF]) + sig[1:])}"
    result = _verify(bad, rsa_spki)
    assert result.outcome is VerificationOutcome.SIGNATURE_MISMATCH
    assert result.claims == CLAIMS
    with pytest.raises(SignatureMismatch):
        require_verified(result)


def test_payload_change_is_mismatch(rsa_spki, rsa_signer):
    token = make_token({"alg": "RS256"}, CLAIMS, rsa_signer)
    h, _, s = token.split(".")
    other = make_token({"alg": "RS256"}, {"sub": "x"}, rsa_signer).split(".")[1]
    assert _verify(f"{h}.{other}.{s}", rsa_spki).outcome is VerificationOutcome.SIGNATURE_MISMATCH


def test_whitespace_in_token_is_malformed(rsa_spki, rsa_signer):
    token = make_token({"alg": "RS256"}, CLAIMS, rsa_signer)
    h, p, s = token.split(".")
    for bad in (" " + token, token + "\n", f"{h}. {p}.{s}", f"{h}.{p}.{s[:4]} {s[4:]}"):
        with pytest.raises(MalformedTokenError):
            _verify(bad, rsa_spki)


@pytest.mark.parametrize("token", ["a.b", "a.b.c.d", "", "onlyone"])
def test_wrong_segment_count(token):
    with pytest.raises(MalformedTokenError):
        _verify(token)


def test_segments_must_be_json_objects():
    with pytest.raises(MalformedTokenError):
        parse_token(f"{b64url(b'not json')}.{b64url(b'{}')}.AAAA")
    with pytest.raises(MalformedTokenError):
        parse_token(f"{b64url(b'[1,2]')}.{b64url(b'{}')}.AAAA")
    with pytest.raises(MalformedTokenError):
        parse_token(f"{b64url(b'{}')}.{b64url(b'{}')}.a+b/")


def test_no_key_skips_verification(gost_signer):
    token = make_token({"alg": "GOST3410_2012_256"}, CLAIMS, gost_signer)
    result = _verify(token)
    assert result.outcome is VerificationOutcome.SKIPPED_NO_KEY
    assert result.claims == CLAIMS
    assert not result.verified
    assert require_verified(result) == CLAIMS


def test_gost_token_verifies(gost_spki, gost_signer):
    token = make_token({"alg": "GOST3410_2012_256", "sbt": "access"}, CLAIMS, gost_signer)
    result = _verify(token, gost_spki)
    assert result.outcome is VerificationOutcome.VERIFIED
    assert result.suite is SignatureSuite.GOST34_10_2012_256


def test_unknown_alg_is_checked_as_rs256(rsa_spki, rsa_signer):
    token = make_token({"alg": "HS256"}, CLAIMS, rsa_signer)
    result = _verify(token, rsa_spki)
    assert result.suite is SignatureSuite.RSA_SHA256
    assert result.outcome is VerificationOutcome.VERIFIED
    no_alg = make_token({"typ": "JWT"}, CLAIMS, rsa_signer)
    assert _verify(no_alg, rsa_spki).verified


def test_gost_header_with_rsa_key_fails_import(rsa_spki, gost_signer):
    token = make_token({"alg": "GOST3410_2012_256"}, CLAIMS, gost_signer)
    with pytest.raises(KeyImportError):
        _verify(token, rsa_spki)
