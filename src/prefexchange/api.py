"""Summary: FastAPI application for the preferences exchange.

Importance: Exposes the load, save, and startup parameter endpoints over HTTP.
Alternatives: Use a different web framework or a CGI script per endpoint.
"""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel

from prefexchange.app import build_context
from prefexchange.auth import Authenticator
from prefexchange.config import AppConfig
from prefexchange.errors import AuthenticatorError, ExchangeError
from prefexchange.models import StartupParameter
from prefexchange.params import render_param_tags


logger = logging.getLogger(__name__)


class StartupParameterResponse(BaseModel):
    """Summary: Response item for a single startup parameter.

    Importance: Keeps the JSON shape of startup parameters explicit.
    Alternatives: Return a flat name-to-value mapping and lose ordering.
    """

    name: str
    value: str


def create_app(config: AppConfig, authenticator: Authenticator | None = None) -> FastAPI:
    """Summary: Create a FastAPI app wired to the exchange handler.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="Preferences Exchange API", version="0.1.0")
    context = build_context(config, authenticator)
    handler = context.handler
    basic = HTTPBasic(auto_error=False)

    def current_user(
        credentials: HTTPBasicCredentials | None = Depends(basic),
    ) -> str | None:
        """Summary: Resolve the signed-in user, or None for guests.

        Importance: Only authenticated, non-guest users receive a save key.
        Alternatives: Use session cookies set by a login form.
        """

        if credentials is None:
            return None
        try:
            user_id = context.authenticator.verify(credentials.username, credentials.password)
        except AuthenticatorError as exc:
            raise HTTPException(status_code=500, detail=exc.message.strip()) from exc
        if user_id is None:
            raise HTTPException(
                status_code=401,
                detail="Wrong username or password",
                headers={"WWW-Authenticate": "Basic"},
            )
        return user_id

    def _startup(user_id: str | None) -> list[StartupParameter]:
        try:
            return handler.startup_parameters(user_id)
        except ExchangeError as exc:
            logger.error("Could not build startup parameters: %s", exc.message.strip())
            raise HTTPException(status_code=500, detail=exc.message.strip()) from exc

    @app.get("/health")
    def health() -> dict[str, str]:
        """Summary: Health check endpoint.

        Importance: Supports uptime checks in local and cloud deployments.
        Alternatives: Use a metrics endpoint only.
        """

        return {"status": "ok", "protocol_variant": config.protocol_variant}

    @app.get("/startup", response_model=list[StartupParameterResponse])
    def startup(user_id: str | None = Depends(current_user)) -> list[StartupParameterResponse]:
        """Summary: Return startup parameters as JSON.

        Importance: Lets page templates and scripted clients read the same parameters.
        Alternatives: Serve only the PARAM markup.
        """

        return [
            StartupParameterResponse(name=param.name, value=param.value)
            for param in _startup(user_id)
        ]

    @app.get("/startup/params", response_class=HTMLResponse)
    def startup_params(user_id: str | None = Depends(current_user)) -> str:
        """Summary: Return startup parameters as PARAM tags.

        Importance: The hosting page inserts this markup inside the client element.
        Alternatives: Render the full page server-side.
        """

        return render_param_tags(_startup(user_id))

    @app.post("/prefs/save")
    async def save_prefs(request: Request) -> Response:
        """Summary: Accept a preferences upload for the configured protocol variant.

        Importance: Reads the raw body so the wire framing stays byte-exact.
        Alternatives: Accept JSON payloads and break existing clients.
        """

        raw = await request.body()
        if config.protocol_variant == "token":
            reply = await run_in_threadpool(handler.token_upload, raw)
        else:
            reply = await run_in_threadpool(handler.credential_save, raw)
        return Response(content=reply.body, status_code=reply.status_code, media_type="text/plain")

    @app.post("/prefs/load")
    async def load_prefs(request: Request) -> Response:
        """Summary: Return stored preferences for a credentials exchange.

        Importance: Serves NOPREFS for new users and the raw blob otherwise.
        Alternatives: Inline preferences into the page for every variant.
        """

        if config.protocol_variant != "credentials":
            raise HTTPException(status_code=404, detail="Preferences are delivered with the page")
        raw = await request.body()
        reply = await run_in_threadpool(handler.credential_load, raw)
        return Response(
            content=reply.body,
            status_code=reply.status_code,
            media_type="application/octet-stream",
        )

    return app


app = create_app(AppConfig.from_env())
