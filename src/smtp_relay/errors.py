# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Error types raised by the relay.

Two failure families are distinguished so that the HTTP layer can map them
to different status codes:

- :class:`ConfigurationError`: the SMTP parameters are missing or malformed.
  Raised before any network activity; the caller can fix its input.
- :class:`DispatchError`: the SMTP conversation failed (connection refused,
  authentication rejected, timeout, ...). Wraps the underlying message.
"""

from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for errors surfaced to callers of the relay."""

    code = "relay_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RelayError):
    """Raised when SMTP transport parameters are missing or invalid."""

    code = "invalid_configuration"
    status_code = 400


class DispatchError(RelayError):
    """Raised when the SMTP transport fails while delivering a message."""

    code = "dispatch_failed"
    status_code = 502

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original

    @classmethod
    def wrap(cls, exc: BaseException) -> DispatchError:
        """Build a DispatchError carrying the text of ``exc``."""
        detail = str(exc) or exc.__class__.__name__
        return cls(f"Failed to send email: {detail}", original=exc)
