"""
Transport-level failures.

Raised by MessageTransport implementations and translated into ArStreamError
subclasses (HandshakeError, SendError) by the streaming session.
"""
from __future__ import annotations


class TransportError(Exception):
    """Base class for transport-layer failures."""


class TransportOpenError(TransportError):
    """The connection or its handshake could not be established."""


class TransportIOError(TransportError):
    """A write failed or was attempted on a transport that is not open."""
