from __future__ import annotations

import logging
import socket
from contextlib import ExitStack
from typing import Optional

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI, WebSocketException
from websockets.sync.client import ClientConnection, connect

from .base import MessageTransport
from .errors import TransportIOError, TransportOpenError


class WebSocketTransport(MessageTransport):
    """
    WebSocket client transport implemented via the websockets sync client.

    Sends text frames only. Incoming frames are never consumed. The connection
    is entered as a context manager and held open until close().
    """

    def __init__(
        self,
        url: str,
        open_timeout: float = 5.0,
        close_timeout: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.url = url
        self.open_timeout = open_timeout
        self.close_timeout = close_timeout
        self.ws: Optional[ClientConnection] = None
        self._stack: Optional[ExitStack] = None
        self._log = logger or logging.getLogger(__name__)

    def open(self) -> None:
        if self.ws is not None:
            return
        stack = ExitStack()
        try:
            self.ws = stack.enter_context(
                connect(
                    self.url,
                    open_timeout=self.open_timeout,
                    close_timeout=self.close_timeout,
                    compression=None,
                )
            )
        except ConnectionRefusedError:
            raise TransportOpenError("connection refused") from None
        except TimeoutError:
            raise TransportOpenError(f"timed out after {self.open_timeout:g}s") from None
        except InvalidURI as e:
            raise TransportOpenError(f"invalid URI: {e}") from None
        except InvalidHandshake as e:
            raise TransportOpenError(f"handshake rejected: {e}") from None
        except (OSError, WebSocketException) as e:
            raise TransportOpenError(str(e) or type(e).__name__) from None
        self._stack = stack

    def close(self) -> None:
        stack = self._stack
        self._stack = None
        self.ws = None
        if stack is None:
            return
        try:
            stack.close()
        except Exception:
            self._log.exception("WEBSOCKET_CLOSE_FAILED url=%s", self.url)

    def abort(self) -> None:
        ws = self.ws
        if ws is None:
            return
        try:
            ws.socket.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # already disconnected
            self._log.debug("WEBSOCKET_ABORT_IGNORED url=%s err=%s", self.url, e)
        else:
            self._log.warning("WEBSOCKET_ABORTED url=%s", self.url)

    def is_open(self) -> bool:
        return self.ws is not None

    def send_text(self, text: str) -> None:
        ws = self.ws
        if ws is None:
            raise TransportIOError("send while transport not open")

        try:
            ws.send(text)
        except ConnectionClosed as e:
            raise TransportIOError(f"connection closed: {e}") from None
        except (OSError, WebSocketException, RuntimeError) as e:
            raise TransportIOError(f"WebSocket send failed: {e}") from None
