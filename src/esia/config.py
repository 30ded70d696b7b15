import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .crypto.errors import ConfigurationError
from .crypto.pem import pem_to_der, split_certificates
from .crypto.suites import SignatureSuite, parse_suite

load_dotenv()

DEFAULT_AUTHORIZATION_URL = "https://esia-portal1.test.gosuslugi.ru/aas/oauth2/ac"
DEFAULT_TOKEN_URL = "https://esia-portal1.test.gosuslugi.ru/aas/oauth2/te"
DEFAULT_SCOPE = "fullname email"

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


class EsiaSettings(BaseModel):
    client_id: str = ""
    scope: str = DEFAULT_SCOPE
    sign_suite: str = "rsa"
    cert_path: Optional[str] = None
    key_path: Optional[str] = None
    ca_pub_key_path: Optional[str] = None
    callback_url: Optional[str] = None
    authorization_url: str = DEFAULT_AUTHORIZATION_URL
    token_url: str = DEFAULT_TOKEN_URL
    http_timeout_s: float = 10.0
    state_store: str = "memory"  # memory|redis
    state_ttl_s: int = 300
    redis_url: str = REDIS_URL

    @property
    def suite(self) -> SignatureSuite:
        return parse_suite(self.sign_suite)


def load_settings() -> EsiaSettings:
    """Read settings from the environment (a ``.env`` file is honoured)."""
    return EsiaSettings(
        client_id=os.getenv("ESIA_CLIENT_ID", ""),
        scope=os.getenv("ESIA_SCOPE", DEFAULT_SCOPE),
        sign_suite=os.getenv("ESIA_SIGN_SUITE", "rsa"),
        cert_path=os.getenv("ESIA_CERT_PATH") or None,
        key_path=os.getenv("ESIA_KEY_PATH") or None,
        ca_pub_key_path=os.getenv("ESIA_CA_PUB_KEY_PATH") or None,
        callback_url=os.getenv("ESIA_CALLBACK_URL") or None,
        authorization_url=os.getenv("ESIA_AUTHORIZATION_URL", DEFAULT_AUTHORIZATION_URL),
        token_url=os.getenv("ESIA_TOKEN_URL", DEFAULT_TOKEN_URL),
        http_timeout_s=float(os.getenv("ESIA_HTTP_TIMEOUT_S", "10")),
        state_store=os.getenv("ESIA_STATE_STORE", "memory").lower(),
        state_ttl_s=int(os.getenv("ESIA_STATE_TTL_S", "300")),
        redis_url=os.getenv("REDIS_URL", REDIS_URL),
    )


@dataclass(frozen=True)
class Credentials:
    """DER material the core consumes; built once from PEM files."""

    certificate_chain: List[bytes]
    private_key: bytes
    ca_public_key: Optional[bytes] = None

    def __repr__(self) -> str:
        return f"Credentials(certificates={len(self.certificate_chain)}, ca_public_key={self.ca_public_key is not None})"


def _read(path: str, what: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ConfigurationError(f"cannot read {what} from {path}") from e


def load_credentials(settings: EsiaSettings) -> Credentials:
    if not settings.key_path:
        raise ConfigurationError("ESIA_KEY_PATH is required")
    if not settings.cert_path:
        raise ConfigurationError("ESIA_CERT_PATH is required")
    key = pem_to_der(_read(settings.key_path, "private key"), expected="PRIVATE KEY")
    chain = split_certificates(_read(settings.cert_path, "certificate"))
    ca = None
    if settings.ca_pub_key_path:
        ca = pem_to_der(_read(settings.ca_pub_key_path, "CA public key"), expected="PUBLIC KEY")
    return Credentials(certificate_chain=chain, private_key=key, ca_public_key=ca)
