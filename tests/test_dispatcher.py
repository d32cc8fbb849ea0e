"""Tests for message normalization, sender precedence and error wrapping."""

import asyncio

import aiosmtplib
import pytest

from smtp_relay.dispatcher import (
    DEFAULT_FROM_EMAIL,
    DEFAULT_FROM_NAME,
    MailDispatcher,
    build_outgoing_mail,
    join_addresses,
    verify_email_config,
)
from smtp_relay.errors import ConfigurationError, DispatchError
from smtp_relay.models import Attachment, SendEmailRequest
from smtp_relay.settings import MailSettings

ENV_SETTINGS = MailSettings(
    email_host="smtp.env.example.com",
    email_user="env-user@example.com",
    email_password="env-pass",
)


def make_request(**overrides) -> SendEmailRequest:
    data = {"to": "dest@example.com", "subject": "Hello", "text": "Hi there"}
    data.update(overrides)
    return SendEmailRequest(**data)


# --- Address and body normalization ---

class TestNormalization:

    def test_join_list_preserves_order(self):
        assert join_addresses(["a@x.com", "b@x.com"]) == "a@x.com, b@x.com"

    def test_single_address_unchanged(self):
        assert join_addresses("a@x.com") == "a@x.com"

    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty_values_are_omitted(self, value):
        assert join_addresses(value) is None

    def test_recipient_lists_joined(self):
        mail = build_outgoing_mail(
            make_request(to=["a@x.com", "b@x.com"], cc=["c@x.com", "d@x.com"], bcc="e@x.com"),
            ENV_SETTINGS,
        )
        assert mail.to == "a@x.com, b@x.com"
        assert mail.cc == "c@x.com, d@x.com"
        assert mail.bcc == "e@x.com"

    def test_cc_and_bcc_omitted_when_missing(self):
        mail = build_outgoing_mail(make_request(), ENV_SETTINGS)
        assert mail.cc is None
        assert mail.bcc is None

    def test_html_falls_back_to_text(self):
        mail = build_outgoing_mail(make_request(text="plain body"), ENV_SETTINGS)
        assert mail.html == "plain body"
        assert mail.text == "plain body"

    def test_html_kept_when_given(self):
        mail = build_outgoing_mail(make_request(text="plain", html="<b>rich</b>"), ENV_SETTINGS)
        assert mail.html == "<b>rich</b>"
        assert mail.text == "plain"

    def test_attachments_passed_through(self):
        attachment = Attachment(filename="a.txt", content="data", content_type="text/plain")
        mail = build_outgoing_mail(make_request(attachments=[attachment]), ENV_SETTINGS)
        assert mail.attachments == (attachment,)

    def test_missing_recipient_rejected(self):
        with pytest.raises(ConfigurationError, match="No recipients"):
            build_outgoing_mail(make_request(to=[]), ENV_SETTINGS)

    @pytest.mark.parametrize("subject", ["Line one\nLine two", "Line one\r\nLine two", "Line one\r\n\r\n Line two "])
    def test_subject_line_breaks_collapsed(self, subject):
        mail = build_outgoing_mail(make_request(subject=subject), ENV_SETTINGS)
        assert mail.subject == "Line one Line two"


# --- Sender precedence ---

class TestSender:

    def test_integration_sender(self, integration):
        mail = build_outgoing_mail(make_request(integration_config=integration()), ENV_SETTINGS)
        assert mail.sender == '"Example Mailer" <mailer@example.com>'
        assert mail.sender_address == "mailer@example.com"

    def test_request_overrides_integration(self, integration):
        request = make_request(
            integration_config=integration(),
            from_email="ceo@example.com",
            from_name="The CEO",
        )
        mail = build_outgoing_mail(request, ENV_SETTINGS)
        assert mail.sender == '"The CEO" <ceo@example.com>'

    def test_request_aliases(self, integration):
        request = SendEmailRequest.model_validate({
            "to": "dest@example.com",
            "subject": "Hi",
            "from": "alias@example.com",
            "fromName": "Alias",
            "integrationConfig": integration().model_dump(),
        })
        mail = build_outgoing_mail(request, ENV_SETTINGS)
        assert mail.sender == '"Alias" <alias@example.com>'

    def test_integration_without_name_uses_product_default(self, integration):
        mail = build_outgoing_mail(make_request(integration_config=integration(from_name=None)), ENV_SETTINGS)
        assert mail.sender == f'"{DEFAULT_FROM_NAME}" <mailer@example.com>'

    def test_integration_path_ignores_env_sender(self, integration):
        settings = MailSettings(email_from="env@example.com", email_from_name="Env Name")
        mail = build_outgoing_mail(make_request(integration_config=integration(from_name=None)), settings)
        assert mail.sender == f'"{DEFAULT_FROM_NAME}" <mailer@example.com>'

    def test_env_from_and_name(self):
        settings = MailSettings(email_user="user@example.com", email_from="from@example.com", email_from_name="Env Name")
        mail = build_outgoing_mail(make_request(), settings)
        assert mail.sender == '"Env Name" <from@example.com>'

    def test_env_falls_back_to_user(self):
        mail = build_outgoing_mail(make_request(), ENV_SETTINGS)
        assert mail.sender == f'"{DEFAULT_FROM_NAME}" <env-user@example.com>'

    def test_hardcoded_defaults(self):
        mail = build_outgoing_mail(make_request(), MailSettings())
        assert mail.sender == f'"{DEFAULT_FROM_NAME}" <{DEFAULT_FROM_EMAIL}>'

    def test_request_name_overrides_env(self):
        settings = MailSettings(email_user="user@example.com", email_from_name="Env Name")
        mail = build_outgoing_mail(make_request(from_name="Override"), settings)
        assert mail.sender == '"Override" <user@example.com>'


# --- Sending ---

@pytest.mark.asyncio
async def test_send_email_uses_resolved_profile(fake_transport, integration):
    dispatcher = MailDispatcher(ENV_SETTINGS, transport=fake_transport)
    await dispatcher.send_email(make_request(integration_config=integration(smtp_port=465)))

    assert len(fake_transport.sent) == 1
    profile, mail = fake_transport.sent[0]
    assert profile.host == "smtp.example.com"
    assert profile.secure is True
    assert mail.to == "dest@example.com"


@pytest.mark.asyncio
async def test_send_email_env_path(fake_transport):
    dispatcher = MailDispatcher(ENV_SETTINGS, transport=fake_transport)
    await dispatcher.send_email(make_request())

    profile, _mail = fake_transport.sent[0]
    assert profile.host == "smtp.env.example.com"
    assert profile.auth.user == "env-user@example.com"


@pytest.mark.asyncio
async def test_configuration_error_skips_transport(fake_transport, integration):
    dispatcher = MailDispatcher(ENV_SETTINGS, transport=fake_transport)
    with pytest.raises(ConfigurationError):
        await dispatcher.send_email(make_request(integration_config=integration(smtp_password="")))
    assert fake_transport.sent == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,fragment",
    [
        (ConnectionRefusedError("Connection refused"), "Connection refused"),
        (aiosmtplib.SMTPAuthenticationError(535, "Authentication credentials invalid"), "Authentication credentials invalid"),
        (asyncio.TimeoutError(), "TimeoutError"),
    ],
)
async def test_transport_failures_are_wrapped(integration, transport_factory, error, fragment):
    dispatcher = MailDispatcher(ENV_SETTINGS, transport=transport_factory(error=error))
    with pytest.raises(DispatchError) as exc_info:
        await dispatcher.send_email(make_request(integration_config=integration()))

    message = str(exc_info.value)
    assert message.startswith("Failed to send email: ")
    assert fragment in message
    assert exc_info.value.__cause__ is error
    assert exc_info.value.original is error
    assert exc_info.value.status_code == 502


# --- Verification ---

@pytest.mark.asyncio
async def test_verify_config_success(fake_transport):
    dispatcher = MailDispatcher(ENV_SETTINGS, transport=fake_transport)
    assert await dispatcher.verify_config() is True
    assert fake_transport.verified[0].host == "smtp.env.example.com"
    assert fake_transport.sent == []


@pytest.mark.asyncio
async def test_verify_config_swallows_transport_error(transport_factory):
    transport = transport_factory(verify_error=aiosmtplib.SMTPConnectError("Connection refused"))
    dispatcher = MailDispatcher(ENV_SETTINGS, transport=transport)
    assert await dispatcher.verify_config() is False


@pytest.mark.asyncio
async def test_verify_config_missing_credentials(fake_transport):
    dispatcher = MailDispatcher(MailSettings(), transport=fake_transport)
    assert await dispatcher.verify_config() is False
    assert fake_transport.verified == []


@pytest.mark.asyncio
async def test_verify_email_config_reads_environment(monkeypatch):
    monkeypatch.setenv("EMAIL_PORT", "not-a-port")
    assert await verify_email_config() is False


@pytest.mark.asyncio
async def test_verify_email_config_without_credentials():
    assert await verify_email_config(MailSettings()) is False
