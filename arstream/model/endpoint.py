from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass

from arstream.core.errors import InvalidEndpointError

DEFAULT_PORT = 8765

_LABEL_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
_FORBIDDEN = ("/", "?", "#", "@", "\\")


@dataclass(frozen=True)
class Endpoint:
    """
    Collector address for one session. The port is fixed by configuration,
    the user only supplies the host.
    """
    host: str
    port: int = DEFAULT_PORT

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"ws://{host}:{self.port}"

    def __str__(self) -> str:
        return self.url

    @classmethod
    def parse(cls, text: str | None, *, port: int = DEFAULT_PORT) -> "Endpoint":
        """
        Build an Endpoint from user host text.

        Accepts an IPv4/IPv6 literal (IPv6 optionally bracketed) or a DNS name.
        Rejects empty text, URLs, paths, credentials and explicit ports.
        """
        host = (text or "").strip()
        if not host:
            raise InvalidEndpointError(
                "Please enter the server IP address.",
                hint="e.g. 192.168.1.100",
            )

        if "://" in host:
            raise InvalidEndpointError(
                f"Expected a host, got a URL: '{host}'.",
                hint="Enter only the address; the scheme and port are added automatically.",
                details={"text": host},
            )

        if any(c.isspace() for c in host) or any(c in host for c in _FORBIDDEN):
            raise InvalidEndpointError(
                f"Malformed host '{host}'.",
                details={"text": host},
            )

        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
            _require_ip(host, version=6)
            return cls(host=host, port=port)

        try:
            addr = ipaddress.ip_address(host)
        except ValueError:
            addr = None
        if addr is not None:
            return cls(host=str(addr) if addr.version == 6 else host, port=port)

        if ":" in host:
            raise InvalidEndpointError(
                f"Malformed host '{host}'.",
                hint=f"The port is fixed at {port}; do not include one.",
                details={"text": host},
            )

        if not _is_hostname(host):
            raise InvalidEndpointError(
                f"Malformed host '{host}'.",
                hint="Use an IPv4 address like 192.168.1.100 or a host name.",
                details={"text": host},
            )

        return cls(host=host, port=port)


def _require_ip(text: str, *, version: int) -> None:
    try:
        addr = ipaddress.ip_address(text)
    except ValueError:
        addr = None
    if addr is None or addr.version != version:
        raise InvalidEndpointError(
            f"Malformed IPv{version} address '{text}'.",
            details={"text": text},
        )


def _is_hostname(text: str) -> bool:
    name = text[:-1] if text.endswith(".") else text
    if not name or len(name) > 253:
        return False
    labels = name.split(".")
    if not all(_LABEL_RE.match(label) for label in labels):
        return False
    # all-numeric names would be a broken IPv4 literal (e.g. 999.1.1.1)
    return not labels[-1].isdigit()
