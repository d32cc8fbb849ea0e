# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mail dispatcher: message normalization and delivery.

The dispatcher turns a :class:`~smtp_relay.models.SendEmailRequest` into a
resolved transport profile plus an :class:`OutgoingMail`, then hands both to
a :class:`~smtp_relay.smtp_transport.MailTransport`. Any failure of the
transport is re-raised as a single :class:`~smtp_relay.errors.DispatchError`
so callers never deal with library specific exceptions.

Sender precedence:
    1. ``from`` / ``fromName`` of the request
    2. ``from_email`` / ``from_name`` of the integration config
    3. without integration config: ``EMAIL_FROM`` (then ``EMAIL_USER``) and
       ``EMAIL_FROM_NAME`` from the settings
    4. the product defaults

Example:
    Sending through the environment transport::

        dispatcher = MailDispatcher(load_settings())
        await dispatcher.send_email(SendEmailRequest(to="a@example.com", subject="Hi", text="Hello"))
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .errors import ConfigurationError, DispatchError
from .logger import get_logger
from .models import Attachment, IntegrationEmailConfig, SendEmailRequest
from .settings import MailSettings, load_settings
from .smtp_transport import AiosmtplibTransport, MailTransport
from .transport import ResolvedTransportProfile, TransportResolver

DEFAULT_FROM_NAME = "aNquest+"
DEFAULT_FROM_EMAIL = "noreply@anquest.com"

logger = get_logger("MailDispatcher")


@dataclass(frozen=True)
class OutgoingMail:
    """Normalized message ready for the transport.

    ``to``, ``cc`` and ``bcc`` are comma separated strings; ``cc`` and ``bcc``
    are ``None`` when the request did not carry them.
    """

    sender: str
    sender_address: str
    to: str
    subject: str
    text: str | None = None
    html: str | None = None
    cc: str | None = None
    bcc: str | None = None
    attachments: tuple[Attachment, ...] = ()


def join_addresses(value: str | Sequence[str] | None) -> str | None:
    """Join a single address or a sequence of addresses with ``", "``.

    Returns ``None`` for missing or empty values.
    """
    if not value:
        return None
    if isinstance(value, str):
        return value
    return ", ".join(value)


def single_line(value: str) -> str:
    """Collapse CR/LF runs into single spaces so the value fits in a header."""
    return " ".join(part.strip() for part in value.splitlines() if part.strip())


def format_sender(name: str, email: str) -> str:
    return f'"{name}" <{email}>'


def resolve_sender(
    request: SendEmailRequest,
    integration_config: IntegrationEmailConfig | None,
    settings: MailSettings,
) -> tuple[str, str]:
    """Return ``(name, email)`` of the sender following the precedence rules."""
    if integration_config is not None:
        email = request.from_email or integration_config.from_email
        name = request.from_name or integration_config.from_name or DEFAULT_FROM_NAME
    else:
        email = request.from_email or settings.email_from or settings.email_user or DEFAULT_FROM_EMAIL
        name = request.from_name or settings.email_from_name or DEFAULT_FROM_NAME
    return name, email


def build_outgoing_mail(
    request: SendEmailRequest,
    settings: MailSettings,
) -> OutgoingMail:
    """Normalize recipients, sender and body of a request.

    Raises:
        ConfigurationError: If the request has no recipient.
    """
    to = join_addresses(request.to)
    if not to:
        raise ConfigurationError("No recipients defined")
    name, email = resolve_sender(request, request.integration_config, settings)
    return OutgoingMail(
        sender=format_sender(name, email),
        sender_address=email,
        to=to,
        subject=single_line(request.subject),
        text=request.text,
        html=request.html or request.text,
        cc=join_addresses(request.cc),
        bcc=join_addresses(request.bcc),
        attachments=tuple(request.attachments or ()),
    )


class MailDispatcher:
    """Resolve, normalize and send one message per call.

    Attributes:
        settings: Immutable process configuration.
        transport: SMTP client implementing :class:`MailTransport`.
        resolver: Transport resolver bound to ``settings``.
    """

    def __init__(
        self,
        settings: MailSettings | None = None,
        transport: MailTransport | None = None,
        resolver: TransportResolver | None = None,
    ):
        self.settings = settings or MailSettings()
        self.transport = transport or AiosmtplibTransport()
        self.resolver = resolver or TransportResolver(self.settings)

    def prepare(self, request: SendEmailRequest) -> tuple[ResolvedTransportProfile, OutgoingMail]:
        """Resolve the transport and normalize the message without sending it."""
        profile = self.resolver.resolve(request.integration_config)
        return profile, build_outgoing_mail(request, self.settings)

    async def send(self, profile: ResolvedTransportProfile, mail: OutgoingMail) -> None:
        """Deliver ``mail`` through the transport.

        Raises:
            DispatchError: Wrapping whatever the transport raised.
        """
        try:
            await self.transport.send(profile, mail)
        except Exception as exc:
            logger.error("Failed to send email to %s via %s: %s", mail.to, profile.describe(), exc)
            raise DispatchError.wrap(exc) from exc
        logger.info("Email sent to %s via %s", mail.to, profile.describe())

    async def send_email(self, request: SendEmailRequest) -> None:
        """Resolve, normalize and send a request.

        Raises:
            ConfigurationError: Invalid or missing SMTP parameters.
            DispatchError: The SMTP conversation failed.
        """
        try:
            profile, mail = self.prepare(request)
        except ConfigurationError as exc:
            logger.warning("Rejected email configuration: %s", exc)
            raise
        await self.send(profile, mail)

    async def verify_config(self) -> bool:
        """Probe the environment transport with a handshake, sending nothing.

        Returns ``True`` on success. Every error is logged and reported as
        ``False``; this is meant for health checks only.
        """
        try:
            profile = self.resolver.resolve()
            await self.transport.verify(profile)
        except Exception as exc:
            logger.warning("Email configuration check failed: %s", exc)
            return False
        logger.info("Email configuration verified for %s", profile.describe())
        return True


async def send_email(request: SendEmailRequest, settings: MailSettings | None = None) -> None:
    """Send one message, reading settings from the environment when not given."""
    dispatcher = MailDispatcher(settings or load_settings())
    await dispatcher.send_email(request)


async def verify_email_config(settings: MailSettings | None = None) -> bool:
    """Check the environment transport, reading settings when not given."""
    try:
        settings = settings or load_settings()
    except ConfigurationError as exc:
        logger.warning("Email configuration check failed: %s", exc)
        return False
    return await MailDispatcher(settings).verify_config()
