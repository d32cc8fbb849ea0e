# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP transport built on aiosmtplib.

The dispatcher talks to the network through the narrow :class:`MailTransport`
protocol, so tests can substitute a double that simulates refused
connections, rejected credentials or timeouts.

:class:`AiosmtplibTransport` opens a fresh SMTP session for every call; there
is no pooling. TLS behavior follows the resolved profile:

- ``secure=True``: implicit TLS (``use_tls=True``), typically port 465
- ``require_tls=True``: STARTTLS is mandatory (``start_tls=True``)
- otherwise: STARTTLS when the server offers it (``start_tls=None``)

Example:
    Sending a prepared message::

        transport = AiosmtplibTransport()
        await transport.send(profile, mail)
"""

from __future__ import annotations

import asyncio
import mimetypes
from email.message import EmailMessage
from email.utils import getaddresses, make_msgid
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import aiosmtplib

from .logger import get_logger
from .transport import ResolvedTransportProfile

if TYPE_CHECKING:
    from .dispatcher import OutgoingMail
    from .models import Attachment

logger = get_logger("SMTPTransport")


class MailTransport(Protocol):
    """Minimal interface the dispatcher needs from an SMTP client."""

    async def send(self, profile: ResolvedTransportProfile, mail: OutgoingMail) -> None: ...

    async def verify(self, profile: ResolvedTransportProfile) -> None: ...


def _guess_mime(filename: str) -> tuple[str, str]:
    mime_type, _ = mimetypes.guess_type(filename)
    if not mime_type or "/" not in mime_type:
        return "application", "octet-stream"
    maintype, subtype = mime_type.split("/", 1)
    return maintype, subtype


def _attachment_bytes(attachment: Attachment) -> bytes:
    if attachment.content is not None:
        if isinstance(attachment.content, bytes):
            return attachment.content
        return attachment.content.encode("utf-8")
    if attachment.path:
        return Path(attachment.path).expanduser().read_bytes()
    raise ValueError(f"Attachment {attachment.filename} has neither content nor path")


def build_mime_message(mail: OutgoingMail) -> EmailMessage:
    """Render an :class:`OutgoingMail` as a MIME message.

    The plain-text body is the first part and the HTML body its alternative.
    Bcc recipients are not written as a header; they only travel in the
    envelope (see :func:`envelope_recipients`).
    """
    msg = EmailMessage()
    msg["From"] = mail.sender
    msg["To"] = mail.to
    if mail.cc:
        msg["Cc"] = mail.cc
    msg["Subject"] = mail.subject
    msg["Message-ID"] = make_msgid()

    if mail.text is not None:
        msg.set_content(mail.text)
        if mail.html is not None:
            msg.add_alternative(mail.html, subtype="html")
    elif mail.html is not None:
        msg.set_content(mail.html, subtype="html")
    else:
        msg.set_content("")

    for attachment in mail.attachments:
        if attachment.content_type and "/" in attachment.content_type:
            maintype, subtype = attachment.content_type.split("/", 1)
        else:
            maintype, subtype = _guess_mime(attachment.filename)
        msg.add_attachment(
            _attachment_bytes(attachment),
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
        )
    return msg


def envelope_recipients(mail: OutgoingMail) -> list[str]:
    """All envelope recipients (To, Cc and Bcc) as bare addresses, in order."""
    fields = [value for value in (mail.to, mail.cc, mail.bcc) if value]
    return [addr for _name, addr in getaddresses(fields) if addr]


class AiosmtplibTransport:
    """One SMTP session per call, bounded by the profile timeouts."""

    def _client(self, profile: ResolvedTransportProfile) -> aiosmtplib.SMTP:
        host, port, secure = profile.endpoint()
        if secure:
            start_tls = False
        elif profile.require_tls:
            start_tls = True
        else:
            start_tls = None
        return aiosmtplib.SMTP(
            hostname=host,
            port=port,
            use_tls=secure,
            start_tls=start_tls,
            timeout=profile.timeouts.socket / 1000,
        )

    async def _open(self, profile: ResolvedTransportProfile) -> aiosmtplib.SMTP:
        """Connect (TLS handshake and greeting included) and authenticate."""
        smtp = self._client(profile)
        timeouts = profile.timeouts
        await asyncio.wait_for(smtp.connect(), timeout=(timeouts.connect + timeouts.greeting) / 1000)
        try:
            await smtp.login(profile.auth.user, profile.auth.password)
        except BaseException:
            await self._close(smtp)
            raise
        return smtp

    async def _close(self, smtp: aiosmtplib.SMTP) -> None:
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            logger.debug("Ignoring error while closing SMTP session: %s", exc)

    async def send(self, profile: ResolvedTransportProfile, mail: OutgoingMail) -> None:
        message = build_mime_message(mail)
        recipients = envelope_recipients(mail)
        logger.debug("Connecting to %s", profile.describe())
        smtp = await self._open(profile)
        try:
            await smtp.send_message(message, sender=mail.sender_address, recipients=recipients)
        finally:
            await self._close(smtp)

    async def verify(self, profile: ResolvedTransportProfile) -> None:
        """Connect and authenticate without sending anything."""
        logger.debug("Verifying %s", profile.describe())
        smtp = await self._open(profile)
        await self._close(smtp)
