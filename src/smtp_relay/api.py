# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""FastAPI application factory for the SMTP relay.

Routes:
    - ``POST /api/send-email``: relay one message with the SMTP credentials
      carried in the body
    - ``GET /health``: liveness probe
    - ``/``: static assets from the configured directory, when it exists

Every response of ``/api/send-email`` has the shape
``{"success": bool, "message": str}``. Failures map to:

- ``400`` for :class:`~smtp_relay.errors.ConfigurationError` and malformed bodies
- ``502`` for :class:`~smtp_relay.errors.DispatchError`
- ``500`` for anything unexpected

Example:
    Creating and running the application::

        from smtp_relay.api import create_app
        from smtp_relay.dispatcher import MailDispatcher

        app = create_app(MailDispatcher(settings), static_dir="public")
        uvicorn.run(app, host="0.0.0.0", port=3000)
"""

from __future__ import annotations

import html
from collections.abc import Callable
from pathlib import Path
from typing import AsyncContextManager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .dispatcher import MailDispatcher
from .errors import RelayError
from .logger import get_logger
from .models import SendEmailPayload, SendEmailRequest, SendEmailResponse

logger = get_logger("RelayAPI")

SUCCESS_MESSAGE = "Email sent successfully!"


def _failure(status_code: int, message: str) -> JSONResponse:
    body = SendEmailResponse(success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def build_request(payload: SendEmailPayload) -> SendEmailRequest:
    """Translate the HTTP body into a dispatcher request.

    The SMTP fields always form an integration config; this route never
    falls back to the process-wide credentials. The message is HTML-escaped
    before being wrapped in a paragraph, so markup sent in ``message`` shows
    up as literal text in the HTML body.
    """
    config = payload.to_integration_config()
    message = payload.message or ""
    return SendEmailRequest(
        to=payload.to or "",
        subject=payload.subject or "",
        text=message,
        html=f"<p>{html.escape(message)}</p>",
        from_email=payload.fromEmail or None,
        from_name=payload.fromName or None,
        integration_config=config,
    )


def create_app(
    dispatcher: MailDispatcher,
    static_dir: str | Path | None = None,
    lifespan: Callable[[FastAPI], AsyncContextManager] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    dispatcher:
        :class:`~smtp_relay.dispatcher.MailDispatcher` used for every send.
    static_dir:
        Optional directory served at ``/``. Ignored when it does not exist.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn.
    """
    api = FastAPI(title="SMTP Relay", lifespan=lifespan)
    api.state.dispatcher = dispatcher
    api.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed bodies in the relay response shape."""
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ())[1:]) or 'body'}: {err.get('msg')}"
            for err in exc.errors()
        )
        logger.error("Validation error on %s %s: %s", request.method, request.url.path, problems)
        return _failure(status.HTTP_400_BAD_REQUEST, f"Invalid request: {problems}")

    @api.exception_handler(RelayError)
    async def relay_exception_handler(request: Request, exc: RelayError):
        logger.error("Email send error on %s: %s", request.url.path, exc)
        return _failure(exc.status_code, str(exc))

    @api.get("/health")
    async def health():
        """Health check endpoint for container monitoring."""
        return {"status": "ok"}

    @api.post("/api/send-email", response_model=SendEmailResponse)
    async def send_email(payload: SendEmailPayload, request: Request):
        """Send one email with the SMTP credentials given in the body."""
        relay: MailDispatcher = request.app.state.dispatcher
        try:
            await relay.send_email(build_request(payload))
        except RelayError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while sending email")
            return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Failed to send email")
        return SendEmailResponse(success=True, message=SUCCESS_MESSAGE)

    if static_dir is not None and Path(static_dir).is_dir():
        api.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    elif static_dir is not None:
        logger.info("Static directory %s not found, static serving disabled", static_dir)

    return api
