from __future__ import annotations

from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from .config import load_settings
from .crypto.errors import (
    EsiaCryptoError,
    MalformedTokenError,
    SignatureMismatch,
    TokenExchangeError,
)
from .oauth.client import EsiaOAuthClient
from .oauth.state import StateStore, make_state_store
from .obs.prom import observe_callback, prometheus_latest
from .utils.logging import get_logger

load_dotenv()

log = get_logger()


def create_app(
    oauth_client: Optional[EsiaOAuthClient] = None,
    state_store: Optional[StateStore] = None,
    state_ttl_s: Optional[int] = None,
) -> FastAPI:
    """Build the service; missing collaborators are created from the environment on first use."""
    app = FastAPI(title="ESIA signer")
    app.state.oauth_client = oauth_client
    app.state.state_store = state_store
    app.state.state_ttl_s = state_ttl_s

    def _client() -> EsiaOAuthClient:
        if app.state.oauth_client is None:
            app.state.oauth_client = EsiaOAuthClient.from_settings(load_settings())
        return app.state.oauth_client

    def _store() -> StateStore:
        if app.state.state_store is None:
            app.state.state_store = make_state_store(load_settings())
        return app.state.state_store

    def _ttl() -> int:
        if app.state.state_ttl_s is None:
            app.state.state_ttl_s = load_settings().state_ttl_s
        return app.state.state_ttl_s

    @app.get("/__health")
    async def health():
        return {"status": "ok"}

    @app.get("/auth/esia")
    async def login(access_type: str = "online"):
        state = _store().issue(ttl=_ttl())
        try:
            url, _ = await _client().authorization_url(state=state, access_type=access_type)
        except EsiaCryptoError as e:
            log.error(f"authorization redirect failed: {type(e).__name__}")
            return JSONResponse({"error": "signing_failed"}, status_code=500)
        return RedirectResponse(url, status_code=302)

    @app.get("/auth/esia/callback")
    async def callback(request: Request):
        q = request.query_params
        if q.get("error"):
            observe_callback("provider_error")
            return JSONResponse(
                {"error": q.get("error"), "error_description": q.get("error_description")},
                status_code=400,
            )
        code, state = q.get("code"), q.get("state")
        if not code or not state:
            observe_callback("bad_request")
            return JSONResponse({"error": "missing code or state"}, status_code=400)
        if not _store().consume(state):
            observe_callback("invalid_state")
            return JSONResponse({"error": "invalid_state"}, status_code=400)
        client = _client()
        try:
            tokens = await client.exchange_code(code, state)
            claims = await client.user_profile(tokens["access_token"])
        except TokenExchangeError as e:
            observe_callback("token_exchange_failed")
            return JSONResponse({"error": "token_exchange_failed", "status": e.status_code}, status_code=502)
        except SignatureMismatch:
            observe_callback("signature_mismatch")
            return JSONResponse({"error": "invalid_token_signature"}, status_code=401)
        except MalformedTokenError:
            observe_callback("malformed_token")
            return JSONResponse({"error": "malformed_token"}, status_code=401)
        except EsiaCryptoError as e:
            log.error(f"callback failed: {type(e).__name__}")
            observe_callback("error")
            return JSONResponse({"error": "authentication_failed"}, status_code=500)
        observe_callback("ok")
        return JSONResponse({"ok": True, "claims": claims})

    @app.get("/metrics")
    def prometheus_metrics():
        body, content_type = prometheus_latest()
        return Response(body, media_type=content_type)

    return app


app = create_app()
