import pytest

from smtp_relay.models import IntegrationEmailConfig

RELAY_ENV_VARS = (
    "EMAIL_SERVICE",
    "EMAIL_HOST",
    "EMAIL_PORT",
    "EMAIL_USER",
    "EMAIL_PASSWORD",
    "EMAIL_FROM",
    "EMAIL_FROM_NAME",
    "RELAY_CONFIG",
    "RELAY_HOST",
    "RELAY_PORT",
    "RELAY_STATIC_DIR",
    "RELAY_LOG_LEVEL",
    "PORT",
)


class FakeTransport:
    """Transport double recording calls and raising on demand."""

    def __init__(self, error=None, verify_error=None):
        self.error = error
        self.verify_error = verify_error
        self.sent = []
        self.verified = []

    async def send(self, profile, mail):
        if self.error is not None:
            raise self.error
        self.sent.append((profile, mail))

    async def verify(self, profile):
        if self.verify_error is not None:
            raise self.verify_error
        self.verified.append(profile)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's environment and config.ini."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_transport():
    return FakeTransport()


def make_integration(**overrides) -> IntegrationEmailConfig:
    data = {
        "smtp_host": "smtp.example.com",
        "smtp_port": 587,
        "smtp_user": "mailer@example.com",
        "smtp_password": "secret",
        "from_email": "mailer@example.com",
        "from_name": "Example Mailer",
    }
    data.update(overrides)
    return IntegrationEmailConfig(**data)


@pytest.fixture
def integration():
    """Factory for valid integration configs with per-test overrides."""
    return make_integration


@pytest.fixture
def transport_factory():
    return FakeTransport
