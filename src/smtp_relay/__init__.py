"""Single-endpoint HTTP relay that sends email through SMTP.

The package resolves a validated SMTP transport profile either from
per-request credentials (an integration config) or from the process-wide
settings, then sends one message per call through aiosmtplib.

- :mod:`smtp_relay.transport`: transport resolution and validation
- :mod:`smtp_relay.dispatcher`: message normalization and delivery
- :mod:`smtp_relay.api`: FastAPI application with ``POST /api/send-email``
- :mod:`smtp_relay.cli`: ``smtp-relay`` command line

Example:
    Basic usage with the FastAPI application::

        from smtp_relay.api import create_app
        from smtp_relay.dispatcher import MailDispatcher
        from smtp_relay.settings import load_settings

        app = create_app(MailDispatcher(load_settings()), static_dir="public")
"""

__version__ = "0.1.0"
