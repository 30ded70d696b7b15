from __future__ import annotations

from enum import Enum

from .errors import UnsupportedSuiteError


class SignatureSuite(str, Enum):
    RSA_SHA256 = "RSA_SHA256"
    GOST34_10_2012_256 = "GOST34_10_2012_256"


# Short names used in configuration and on the command line
_ALIASES = {
    "rsa": SignatureSuite.RSA_SHA256,
    "rsa_sha256": SignatureSuite.RSA_SHA256,
    "gost": SignatureSuite.GOST34_10_2012_256,
    "gost34_10_2012_256": SignatureSuite.GOST34_10_2012_256,
}

# Token header "alg" value the provider uses for the GOST suite
GOST_JWS_ALG = "GOST3410_2012_256"


def parse_suite(value: SignatureSuite | str | None) -> SignatureSuite:
    if isinstance(value, SignatureSuite):
        return value
    if value is None:
        return SignatureSuite.RSA_SHA256
    suite = _ALIASES.get(str(value).strip().lower())
    if suite is None:
        raise UnsupportedSuiteError(f"unsupported signature suite: {value!r}")
    return suite


def suite_for_jws_alg(alg: str | None) -> SignatureSuite:
    """Map a token header ``alg`` to a suite.

    Only the exact GOST identifier selects GOST, every other value (missing
    included) falls back to RSA/SHA-256.
    """
    if alg == GOST_JWS_ALG:
        return SignatureSuite.GOST34_10_2012_256
    return SignatureSuite.RSA_SHA256


__all__ = ["SignatureSuite", "parse_suite", "suite_for_jws_alg", "GOST_JWS_ALG"]
