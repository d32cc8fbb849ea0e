# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for the SMTP relay.

Models:
    - IntegrationEmailConfig: per-tenant SMTP credentials supplied by the caller
    - Attachment: file attached to an outgoing message
    - SendEmailRequest: message fields plus optional integration config
    - SendEmailPayload: body of ``POST /api/send-email``
    - SendEmailResponse: body returned by ``POST /api/send-email``
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigurationError

AddressList = Union[str, list[str]]


class IntegrationEmailConfig(BaseModel):
    """SMTP configuration belonging to one tenant or integration.

    Only the shape is consumed here; where it is stored is up to the caller.
    Validation of the values (empty fields, hosts that look like email
    addresses) is done by the transport resolver so that it can report a
    :class:`~smtp_relay.errors.ConfigurationError`.

    Attributes:
        smtp_host: SMTP server hostname.
        smtp_port: SMTP server port.
        smtp_user: Username for SMTP authentication.
        smtp_password: Password for SMTP authentication.
        smtp_secure: Use implicit TLS on ports other than 465/587.
        from_email: Sender address used when the request has none.
        from_name: Sender display name used when the request has none.
    """

    model_config = ConfigDict(frozen=True)

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_secure: bool | None = None
    from_email: str = ""
    from_name: str | None = None


class Attachment(BaseModel):
    """Attachment handed to the transport as-is.

    Either ``content`` or ``path`` should be set. ``content_type`` is guessed
    from the filename when omitted.
    """

    model_config = ConfigDict(populate_by_name=True)

    filename: str
    content: str | bytes | None = None
    path: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")


class SendEmailRequest(BaseModel):
    """A single message to relay.

    ``to``, ``cc`` and ``bcc`` accept a single address or a list of
    addresses. ``from`` and ``fromName`` override every configured sender.
    """

    model_config = ConfigDict(populate_by_name=True)

    to: AddressList
    subject: str
    text: str | None = None
    html: str | None = None
    cc: AddressList | None = None
    bcc: AddressList | None = None
    attachments: list[Attachment] | None = None
    from_email: str | None = Field(default=None, alias="from")
    from_name: str | None = Field(default=None, alias="fromName")
    integration_config: IntegrationEmailConfig | None = Field(default=None, alias="integrationConfig")


class SendEmailPayload(BaseModel):
    """Body accepted by ``POST /api/send-email``.

    Every field is optional here: missing SMTP values are reported by the
    resolver as a configuration error, in the same response shape as any
    other failure.
    """

    smtpHost: str | None = None
    smtpPort: int | None = None
    smtpUser: str | None = None
    smtpPass: str | None = None
    fromEmail: str | None = None
    fromName: str | None = None
    to: AddressList | None = None
    subject: str | None = None
    message: str | None = None

    @field_validator("smtpPort", mode="before")
    @classmethod
    def coerce_port(cls, v):
        """Accept numeric strings and treat blanks as missing."""
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
        return v

    def to_integration_config(self) -> IntegrationEmailConfig:
        """Build the integration config; the port is mandatory on this path."""
        if self.smtpPort is None:
            raise ConfigurationError("Invalid integration config: missing required SMTP fields")
        return IntegrationEmailConfig(
            smtp_host=(self.smtpHost or "").strip(),
            smtp_port=self.smtpPort,
            smtp_user=self.smtpUser or "",
            smtp_password=self.smtpPass or "",
            from_email=self.fromEmail or "",
            from_name=self.fromName,
        )


class SendEmailResponse(BaseModel):
    """Uniform response of ``POST /api/send-email``."""

    success: bool
    message: str
