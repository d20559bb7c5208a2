"""Client-side errors."""

from __future__ import annotations


class NotConnectedError(RuntimeError):
    """An action needs a live session but the channel is not connected."""


class HandshakeError(ConnectionError):
    """The transport opened but the server never confirmed the session."""


class ApiError(RuntimeError):
    """A REST fallback request failed."""
