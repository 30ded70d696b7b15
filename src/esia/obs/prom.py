"""Prometheus instrumentation for the signing and verification engine.

Labels stay low-cardinality: suite plus a result/outcome name.
"""
from __future__ import annotations
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

REGISTRY = CollectorRegistry()

CLIENT_SECRETS = Counter(
    "esia_client_secrets_total",
    "Client secrets built, by suite and result (ok or error class).",
    ["suite", "result"],
    registry=REGISTRY,
)
TOKEN_VERIFICATIONS = Counter(
    "esia_token_verifications_total",
    "Token verifications by suite and outcome.",
    ["suite", "outcome"],
    registry=REGISTRY,
)
SIGN_LAT_HIST = Histogram(
    "esia_client_secret_latency_ms",
    "Time to import key, sign and encode one client secret (ms).",
    ["suite"],
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 500, 1000, 2500),
    registry=REGISTRY,
)
OAUTH_CALLBACKS = Counter(
    "esia_oauth_callbacks_total",
    "OAuth callbacks handled, by result.",
    ["result"],
    registry=REGISTRY,
)


def observe_client_secret(*, suite: str, result: str, latency_ms: float):
    CLIENT_SECRETS.labels(suite=suite, result=result).inc()
    if result == "ok":
        SIGN_LAT_HIST.labels(suite=suite).observe(latency_ms)


def observe_token(*, suite: str, outcome: str):
    TOKEN_VERIFICATIONS.labels(suite=suite, outcome=outcome).inc()


def observe_callback(result: str):
    OAUTH_CALLBACKS.labels(result=result).inc()


def prometheus_latest() -> tuple[bytes, str]:
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
