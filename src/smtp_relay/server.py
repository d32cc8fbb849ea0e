# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ASGI application entry point for uvicorn.

This module builds the settings from the environment (a ``.env`` file in
the working directory is loaded first), configures logging and exposes a
ready FastAPI application.

Usage:
    uvicorn smtp_relay.server:app --host 0.0.0.0 --port 3000

Environment variables:
    See :mod:`smtp_relay.settings`.
"""

from __future__ import annotations

from dotenv import load_dotenv
from fastapi import FastAPI

from .api import create_app
from .dispatcher import MailDispatcher
from .logger import configure_logging, get_logger
from .settings import MailSettings, load_settings


def build_app(settings: MailSettings) -> FastAPI:
    """Create the application for an explicit settings snapshot."""
    dispatcher = MailDispatcher(settings)
    return create_app(dispatcher, static_dir=settings.static_dir)


load_dotenv()
_settings = load_settings()
configure_logging(_settings.log_level)
get_logger("RelayServer").info(
    "SMTP relay configured (static dir: %s)", _settings.static_dir or "disabled"
)

app = build_app(_settings)
