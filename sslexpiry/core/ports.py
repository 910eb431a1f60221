"""
Port and STARTTLS protocol resolution
by BitSpectreLabs
"""

from typing import NamedTuple, Optional, Union

from sslexpiry.core.exceptions import UnknownPortOrProtocol


DEFAULT_PORT = 443


class PortInfo(NamedTuple):
    """A concrete TCP port and the STARTTLS protocol it implies, if any."""
    port: int
    protocol: Optional[str] = None


# Named services and the plaintext handshake they need before TLS
NAMED_PORTS = {
    "https": PortInfo(443),
    "imap": PortInfo(143, "imap"),
    "imaps": PortInfo(993),
    "pop3s": PortInfo(995),
    "smtp": PortInfo(25, "smtp"),
    "smtps": PortInfo(465),
    "submission": PortInfo(587, "smtp"),
}


def resolve_port(port: Union[int, str, None]) -> PortInfo:
    """
    Resolve a port specifier to a port number and implied protocol.

    Args:
        port: None or "" (default port), an integer, a string of digits,
            or one of the service names in NAMED_PORTS

    Returns:
        PortInfo for the specifier

    Raises:
        UnknownPortOrProtocol: if the specifier is not recognised

    Examples:
        >>> resolve_port(None)
        PortInfo(port=443, protocol=None)
        >>> resolve_port("submission")
        PortInfo(port=587, protocol='smtp')
    """
    if port is None or port == "":
        return PortInfo(DEFAULT_PORT)
    if isinstance(port, int) and not isinstance(port, bool):
        if port < 0:
            raise UnknownPortOrProtocol(f"Unknown port {port}")
        return PortInfo(port)
    if isinstance(port, str):
        if port.isascii() and port.isdigit():
            return PortInfo(int(port))
        if port in NAMED_PORTS:
            return NAMED_PORTS[port]
    raise UnknownPortOrProtocol(f"Unknown port {port}")
