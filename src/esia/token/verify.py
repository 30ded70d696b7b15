"""Verification of the compact signed tokens the provider issues.

The suite is taken from the token's own ``alg`` header; the trusted key is
imported under that suite whatever its native type. Only the exact GOST
identifier selects GOST, anything else is checked as RS256.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from ..crypto.codec import b64url_decode
from ..crypto.errors import MalformedTokenError, SignatureMismatch
from ..crypto.registry import get_engine
from ..crypto.suites import SignatureSuite, suite_for_jws_alg
from ..obs.prom import observe_token
from ..utils.logging import get_logger

log = get_logger("token")


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    SIGNATURE_MISMATCH = "signature-mismatch"
    SKIPPED_NO_KEY = "skipped-no-key"


@dataclass(frozen=True)
class ParsedToken:
    header: Dict[str, Any]
    claims: Dict[str, Any]
    signing_input: bytes = field(repr=False)
    signature: bytes = field(repr=False)

    @property
    def alg(self) -> Any:
        return self.header.get("alg")


@dataclass(frozen=True)
class VerificationResult:
    claims: Dict[str, Any]
    outcome: VerificationOutcome
    suite: SignatureSuite | None = None

    @property
    def verified(self) -> bool:
        return self.outcome is VerificationOutcome.VERIFIED


def _json_segment(segment: str, name: str) -> Dict[str, Any]:
    try:
        obj = json.loads(b64url_decode(segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedTokenError(f"token {name} is not base64url JSON") from e
    if not isinstance(obj, dict):
        raise MalformedTokenError(f"token {name} is not a JSON object")
    return obj


def parse_token(token: str) -> ParsedToken:
    if not isinstance(token, str) or not token:
        raise MalformedTokenError("empty token")
    if any(c.isspace() for c in token):
        raise MalformedTokenError("token contains whitespace")
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedTokenError(f"token has {len(parts)} segments, expected 3")
    header_seg, payload_seg, sig_seg = parts
    header = _json_segment(header_seg, "header")
    claims = _json_segment(payload_seg, "payload")
    try:
        signature = b64url_decode(sig_seg)
    except ValueError as e:
        raise MalformedTokenError("token signature is not base64url") from e
    # Signed bytes are the segments as received, never a re-serialisation
    signing_input = f"{header_seg}.{payload_seg}".encode("ascii")
    return ParsedToken(header=header, claims=claims, signing_input=signing_input, signature=signature)


async def verify_parsed(parsed: ParsedToken, trusted_public_key: bytes | None = None) -> VerificationResult:
    if not trusted_public_key:
        observe_token(suite="none", outcome=VerificationOutcome.SKIPPED_NO_KEY.value)
        return VerificationResult(claims=parsed.claims, outcome=VerificationOutcome.SKIPPED_NO_KEY)
    suite = suite_for_jws_alg(parsed.alg)
    engine = get_engine(suite)
    key = await asyncio.to_thread(engine.import_public_key, trusted_public_key)
    ok = await asyncio.to_thread(engine.verify, key, parsed.signature, parsed.signing_input)
    outcome = VerificationOutcome.VERIFIED if ok else VerificationOutcome.SIGNATURE_MISMATCH
    observe_token(suite=suite.value, outcome=outcome.value)
    if not ok:
        log.warning(f"token signature mismatch alg={parsed.alg!r} suite={suite.value}")
    return VerificationResult(claims=parsed.claims, outcome=outcome, suite=suite)


async def verify_token(token: str, trusted_public_key: bytes | None = None) -> VerificationResult:
    """Parse ``token`` and check its signature against ``trusted_public_key`` (SPKI DER).

    Without a key the claims are returned unchecked with ``SKIPPED_NO_KEY``.
    A bad signature is an outcome, not an exception; parse and key import
    failures raise.
    """
    return await verify_parsed(parse_token(token), trusted_public_key)


def require_verified(result: VerificationResult) -> Dict[str, Any]:
    if result.outcome is VerificationOutcome.SIGNATURE_MISMATCH:
        raise SignatureMismatch("token signature does not verify")
    return result.claims


__all__ = [
    "VerificationOutcome",
    "VerificationResult",
    "ParsedToken",
    "parse_token",
    "verify_parsed",
    "verify_token",
    "require_verified",
]
