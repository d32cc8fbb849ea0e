# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Process-wide configuration for the SMTP relay.

Settings are read once at startup from environment variables, with an
optional INI file as fallback, and frozen into a :class:`MailSettings`
instance that is passed explicitly to the resolver and the dispatcher.

Environment variables take precedence over the INI file:

    EMAIL_SERVICE      [email] service     Named provider (e.g. "gmail")
    EMAIL_HOST         [email] host        Custom SMTP host
    EMAIL_PORT         [email] port        SMTP port (default: 587)
    EMAIL_USER         [email] user        SMTP username
    EMAIL_PASSWORD     [email] password    SMTP password
    EMAIL_FROM         [email] from        Default sender address
    EMAIL_FROM_NAME    [email] from_name   Default sender display name
    RELAY_HOST         [server] host       HTTP bind host (default: 0.0.0.0)
    PORT / RELAY_PORT  [server] port       HTTP bind port (default: 3000)
    RELAY_STATIC_DIR   [server] static_dir Static assets directory (default: public)
    RELAY_LOG_LEVEL    [logging] level     Logging level (default: INFO)

The INI file path comes from ``RELAY_CONFIG`` (default: ``config.ini``); a
missing file is not an error.

Example:
    Loading settings with substituted values in tests::

        settings = load_settings(environ={"EMAIL_USER": "u", "EMAIL_PASSWORD": "p"})
        assert settings.email_port == 587
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError

DEFAULT_SMTP_PORT = 587
DEFAULT_HTTP_PORT = 3000


@dataclass(frozen=True)
class MailSettings:
    """Immutable snapshot of the relay configuration.

    Attributes:
        email_service: Named SMTP provider, takes precedence over ``email_host``.
        email_host: Custom SMTP server hostname.
        email_port: SMTP port used with ``email_host``.
        email_user: SMTP username for the environment transport.
        email_password: SMTP password for the environment transport.
        email_from: Default sender address.
        email_from_name: Default sender display name.
        http_host: Address the HTTP server binds to.
        http_port: Port the HTTP server listens on.
        static_dir: Directory of static assets served at ``/``.
        log_level: Logging level name.
    """

    email_service: str | None = None
    email_host: str | None = None
    email_port: int = DEFAULT_SMTP_PORT
    email_user: str | None = None
    email_password: str | None = None
    email_from: str | None = None
    email_from_name: str | None = None
    http_host: str = "0.0.0.0"
    http_port: int = DEFAULT_HTTP_PORT
    static_dir: str | None = "public"
    log_level: str = "INFO"

    @property
    def has_credentials(self) -> bool:
        return bool(self.email_user and self.email_password)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings(
    environ: Mapping[str, str] | None = None,
    config_path: str | os.PathLike[str] | None = None,
) -> MailSettings:
    """Build :class:`MailSettings` from the environment and an optional INI file.

    Args:
        environ: Mapping used instead of ``os.environ`` (handy in tests).
        config_path: INI file path. Defaults to ``RELAY_CONFIG`` or ``config.ini``.

    Raises:
        ConfigurationError: If a port value is not an integer.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get("RELAY_CONFIG", "config.ini"))
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path)

    def get(section: str, option: str, env_name: str, fallback: str | None = None) -> str | None:
        value = _clean(env.get(env_name))
        if value is not None:
            return value
        if parser.has_option(section, option):
            return _clean(parser.get(section, option))
        return fallback

    def get_int(section: str, option: str, env_name: str, default: int) -> int:
        value = get(section, option, env_name)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"{env_name} must be an integer, got {value!r}") from None

    http_port_env = "PORT" if _clean(env.get("PORT")) else "RELAY_PORT"

    return MailSettings(
        email_service=get("email", "service", "EMAIL_SERVICE"),
        email_host=get("email", "host", "EMAIL_HOST"),
        email_port=get_int("email", "port", "EMAIL_PORT", DEFAULT_SMTP_PORT),
        email_user=get("email", "user", "EMAIL_USER"),
        email_password=get("email", "password", "EMAIL_PASSWORD"),
        email_from=get("email", "from", "EMAIL_FROM"),
        email_from_name=get("email", "from_name", "EMAIL_FROM_NAME"),
        http_host=get("server", "host", "RELAY_HOST", "0.0.0.0"),
        http_port=get_int("server", "port", http_port_env, DEFAULT_HTTP_PORT),
        static_dir=get("server", "static_dir", "RELAY_STATIC_DIR", "public"),
        log_level=(get("logging", "level", "RELAY_LOG_LEVEL", "INFO") or "INFO").upper(),
    )
