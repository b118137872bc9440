from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class MessageTransport(ABC):
    """
    Abstract message transport (WebSocket, file recording, ...).

    Contract:
      - open() performs the connection handshake; raises TransportOpenError.
      - close() releases the connection; idempotent, never raises TransportError.
      - send_text(text) writes one complete text message; raises TransportIOError.
      - abort() makes a blocked send_text() fail promptly; close() still follows.
      - the client never reads from the transport.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def send_text(self, text: str) -> None: ...

    def abort(self) -> None:
        """Unblock an in-progress write. Transports that cannot stall need not override."""
        return None

    def __enter__(self) -> "MessageTransport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
