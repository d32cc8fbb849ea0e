# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Transport resolution: from configuration to a validated SMTP profile.

This module decides which SMTP parameters to use for a send and validates
them before any network connection is attempted. Two sources are supported:

- an :class:`~smtp_relay.models.IntegrationEmailConfig` supplied with the
  request (per-tenant credentials);
- the process-wide :class:`~smtp_relay.settings.MailSettings` when no
  integration config is given.

TLS mode derivation for integration configs:
- Port 465: implicit TLS (``secure=True``)
- Port 587: STARTTLS required (``secure=False``, ``require_tls=True``)
- Other ports: ``smtp_secure`` flag (default False), STARTTLS required
  whenever the connection is not already secure

Example:
    Resolving a tenant configuration::

        profile = resolve_transport(IntegrationEmailConfig(
            smtp_host="smtp.example.com",
            smtp_port=587,
            smtp_user="mailer@example.com",
            smtp_password="secret",
            from_email="mailer@example.com",
        ))
        assert profile.require_tls is True
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ConfigurationError
from .models import IntegrationEmailConfig
from .settings import DEFAULT_SMTP_PORT, MailSettings

SMTPS_PORT = 465
SUBMISSION_PORT = 587
DEFAULT_SERVICE = "gmail"

# Named providers: service -> (host, port, implicit TLS)
WELL_KNOWN_SERVICES: dict[str, tuple[str, int, bool]] = {
    "gmail": ("smtp.gmail.com", 465, True),
    "googlemail": ("smtp.gmail.com", 465, True),
    "outlook": ("smtp-mail.outlook.com", 587, False),
    "hotmail": ("smtp-mail.outlook.com", 587, False),
    "outlook365": ("smtp.office365.com", 587, False),
    "office365": ("smtp.office365.com", 587, False),
    "yahoo": ("smtp.mail.yahoo.com", 465, True),
    "icloud": ("smtp.mail.me.com", 587, False),
    "zoho": ("smtp.zoho.com", 465, True),
    "fastmail": ("smtp.fastmail.com", 465, True),
    "gmx": ("mail.gmx.com", 587, False),
    "aol": ("smtp.aol.com", 587, False),
    "sendgrid": ("smtp.sendgrid.net", 587, False),
    "mailgun": ("smtp.mailgun.org", 465, True),
    "postmark": ("smtp.postmarkapp.com", 2525, False),
    "ses": ("email-smtp.us-east-1.amazonaws.com", 465, True),
    "mailjet": ("in-v3.mailjet.com", 587, False),
}


@dataclass(frozen=True)
class TransportTimeouts:
    """Operational timeouts in milliseconds. Not configurable per request."""

    connect: int = 10_000
    greeting: int = 5_000
    socket: int = 10_000


@dataclass(frozen=True)
class SMTPAuth:
    user: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ResolvedTransportProfile:
    """Validated parameters needed to open an SMTP session.

    Exactly one of ``host`` (custom server) or ``service`` (named provider)
    is set. For a named provider ``port`` and ``secure`` mirror its entry in
    :data:`WELL_KNOWN_SERVICES`. ``require_tls`` is either ``True`` or
    ``None`` (not forced).
    """

    auth: SMTPAuth
    host: str | None = None
    service: str | None = None
    port: int | None = None
    secure: bool = False
    require_tls: bool | None = None
    timeouts: TransportTimeouts = field(default_factory=TransportTimeouts)

    def __post_init__(self) -> None:
        if (self.host is None) == (self.service is None):
            raise ConfigurationError("Transport profile needs exactly one of host or service")

    def endpoint(self) -> tuple[str, int, bool]:
        """Return ``(host, port, secure)`` to connect to.

        Named services are expanded from :data:`WELL_KNOWN_SERVICES`.
        """
        if self.host is not None:
            return self.host, self.port or DEFAULT_SMTP_PORT, self.secure
        host, port, secure = WELL_KNOWN_SERVICES[self.service]
        return host, port, secure

    def describe(self) -> str:
        """Short human readable description, without credentials."""
        host, port, secure = self.endpoint()
        if secure:
            mode = "implicit TLS"
        elif self.require_tls:
            mode = "STARTTLS"
        else:
            mode = "opportunistic STARTTLS"
        via = f"service {self.service!r} " if self.service else ""
        return f"{via}{host}:{port} ({mode}) as {self.auth.user}"


def derive_security(port: int, smtp_secure: bool | None = None) -> tuple[bool, bool | None]:
    """Return ``(secure, require_tls)`` for an integration config port."""
    if port == SMTPS_PORT:
        return True, None
    if port == SUBMISSION_PORT:
        return False, True
    secure = bool(smtp_secure)
    return secure, (None if secure else True)


def _validate_port(port: int) -> int:
    if not 0 < port < 65536:
        raise ConfigurationError(f"Invalid SMTP port: {port}. Use a value between 1 and 65535")
    return port


def _lookup_service(name: str) -> str:
    key = name.strip().lower()
    if key not in WELL_KNOWN_SERVICES:
        known = ", ".join(sorted(WELL_KNOWN_SERVICES))
        raise ConfigurationError(f"Unknown email service {name!r}. Known services: {known}")
    return key


def _service_profile(key: str, auth: SMTPAuth) -> ResolvedTransportProfile:
    _, port, secure = WELL_KNOWN_SERVICES[key]
    return ResolvedTransportProfile(service=key, port=port, secure=secure, auth=auth)


class TransportResolver:
    """Resolve transport profiles against a fixed settings snapshot.

    The resolver never opens a network connection; it only validates and
    derives parameters.
    """

    def __init__(self, settings: MailSettings | None = None):
        self.settings = settings or MailSettings()

    def resolve(self, integration_config: IntegrationEmailConfig | None = None) -> ResolvedTransportProfile:
        """Resolve the profile for an integration config, or the environment one.

        Raises:
            ConfigurationError: If required fields are missing or malformed.
        """
        if integration_config is not None:
            return self.from_integration(integration_config)
        return self.from_settings()

    def from_integration(self, config: IntegrationEmailConfig) -> ResolvedTransportProfile:
        if not config.smtp_host or not config.smtp_user or not config.smtp_password:
            raise ConfigurationError("Invalid integration config: missing required SMTP fields")
        if "@" in config.smtp_host:
            raise ConfigurationError(
                f'Invalid SMTP Host: "{config.smtp_host}" is an email address. '
                'Use a server address like "smtp.example.com"'
            )
        port = _validate_port(config.smtp_port)
        secure, require_tls = derive_security(port, config.smtp_secure)
        return ResolvedTransportProfile(
            host=config.smtp_host,
            port=port,
            secure=secure,
            require_tls=require_tls,
            auth=SMTPAuth(config.smtp_user, config.smtp_password),
        )

    def from_settings(self) -> ResolvedTransportProfile:
        settings = self.settings
        if not settings.has_credentials:
            raise ConfigurationError(
                "Email configuration is missing. Please set EMAIL_USER and EMAIL_PASSWORD"
            )
        auth = SMTPAuth(settings.email_user, settings.email_password)
        if settings.email_service:
            return _service_profile(_lookup_service(settings.email_service), auth)
        if settings.email_host:
            port = _validate_port(settings.email_port)
            return ResolvedTransportProfile(
                host=settings.email_host,
                port=port,
                secure=port == SMTPS_PORT,
                auth=auth,
            )
        return _service_profile(DEFAULT_SERVICE, auth)


def resolve_transport(
    integration_config: IntegrationEmailConfig | None = None,
    settings: MailSettings | None = None,
) -> ResolvedTransportProfile:
    """Convenience wrapper around :meth:`TransportResolver.resolve`."""
    return TransportResolver(settings).resolve(integration_config)
