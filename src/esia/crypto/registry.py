"""Suite -> engine lookup.

The table is closed: adding a suite means adding an engine class here.
"""
from __future__ import annotations

from typing import Dict

from .engine import CryptoEngine
from .errors import UnsupportedSuiteError
from .gost import GostEngine
from .rsa import RsaEngine
from .suites import SignatureSuite, parse_suite

ENGINES: Dict[SignatureSuite, CryptoEngine] = {
    SignatureSuite.RSA_SHA256: RsaEngine(),
    SignatureSuite.GOST34_10_2012_256: GostEngine(),
}


def get_engine(suite: SignatureSuite | str | None) -> CryptoEngine:
    s = parse_suite(suite)
    try:
        return ENGINES[s]
    except KeyError:  # pragma: no cover - parse_suite only yields table members
        raise UnsupportedSuiteError(f"no engine for suite {s.value}") from None


__all__ = ["ENGINES", "get_engine"]
