"""Authorization-code flow against the provider.

The flow is a thin layer over the core: every request that needs a
``client_secret`` gets a freshly signed one from ``build_client_secret``
and the access token is checked with ``verify_token``. Nothing here
subclasses a generic OAuth client; the only provider specific part is the
extra request parameters.
"""
from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx

from ..cms.builder import build_client_secret
from ..config import (
    DEFAULT_AUTHORIZATION_URL,
    DEFAULT_SCOPE,
    DEFAULT_TOKEN_URL,
    Credentials,
    EsiaSettings,
    load_credentials,
)
from ..crypto.codec import get_timestamp
from ..crypto.errors import ConfigurationError, MalformedTokenError, TokenExchangeError
from ..crypto.suites import SignatureSuite, parse_suite
from ..token.verify import require_verified, verify_token
from ..utils.logging import get_logger

log = get_logger("oauth")


class EsiaOAuthClient:
    def __init__(
        self,
        *,
        client_id: str,
        credentials: Credentials,
        callback_url: str,
        scope: str = DEFAULT_SCOPE,
        suite: SignatureSuite | str = SignatureSuite.RSA_SHA256,
        authorization_url: str = DEFAULT_AUTHORIZATION_URL,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], str] = get_timestamp,
    ):
        if not client_id:
            raise ConfigurationError("client_id is required")
        if not credentials.private_key:
            raise ConfigurationError("private key is required")
        if not credentials.certificate_chain:
            raise ConfigurationError("certificate is required")
        if not callback_url:
            raise ConfigurationError("callback_url is required")
        self.client_id = client_id
        self.credentials = credentials
        self.callback_url = callback_url
        self.scope = scope
        self.suite = parse_suite(suite)
        self.authorization_endpoint = authorization_url
        self.token_endpoint = token_url
        self.timeout_s = timeout_s
        self._transport = transport
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: EsiaSettings,
        credentials: Credentials | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "EsiaOAuthClient":
        return cls(
            client_id=settings.client_id,
            credentials=credentials or load_credentials(settings),
            callback_url=settings.callback_url or "",
            scope=settings.scope,
            suite=settings.suite,
            authorization_url=settings.authorization_url,
            token_url=settings.token_url,
            timeout_s=settings.http_timeout_s,
            transport=transport,
        )

    async def _signed(self, state: str) -> Tuple[str, str]:
        timestamp = self._clock()
        secret = await build_client_secret(
            self.scope,
            timestamp,
            self.client_id,
            state,
            self.credentials.certificate_chain,
            self.credentials.private_key,
            self.suite,
        )
        return timestamp, secret

    async def authorization_params(self, state: str, access_type: str = "online") -> Dict[str, str]:
        timestamp, secret = await self._signed(state)
        return {
            "timestamp": timestamp,
            "access_type": access_type,
            "client_secret": secret,
        }

    async def authorization_url(self, state: str | None = None, access_type: str = "online") -> Tuple[str, str]:
        """Return the redirect URL and the state it carries."""
        state = state or str(uuid.uuid4())
        params = await self.authorization_params(state, access_type)
        params.update(
            {
                "client_id": self.client_id,
                "response_type": "code",
                "scope": self.scope,
                "state": state,
                "redirect_uri": self.callback_url,
            }
        )
        return f"{self.authorization_endpoint}?{urlencode(params)}", state

    async def token_params(self, state: str) -> Dict[str, str]:
        timestamp, secret = await self._signed(state)
        return {
            "timestamp": timestamp,
            "scope": self.scope,
            "state": state,
            "token_type": "Bearer",
            "client_secret": secret,
        }

    async def exchange_code(self, code: str, state: str) -> Dict[str, Any]:
        form = await self.token_params(state)
        form.update(
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "redirect_uri": self.callback_url,
            }
        )
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            try:
                resp = await client.post(self.token_endpoint, data=form)
            except httpx.HTTPError as e:
                raise TokenExchangeError(f"token endpoint unreachable: {type(e).__name__}") from e
        if resp.status_code >= 400:
            log.warning(f"token exchange failed status={resp.status_code}")
            raise TokenExchangeError(f"token endpoint returned {resp.status_code}", status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as e:
            raise TokenExchangeError("token endpoint returned non-JSON body", status_code=resp.status_code) from e
        if not isinstance(body, dict) or "access_token" not in body:
            raise TokenExchangeError("token response has no access_token", status_code=resp.status_code)
        return body

    async def user_profile(self, access_token: str) -> Dict[str, Any]:
        if not access_token:
            raise MalformedTokenError("empty access token")
        result = await verify_token(access_token, self.credentials.ca_public_key)
        return require_verified(result)


__all__ = ["EsiaOAuthClient"]
