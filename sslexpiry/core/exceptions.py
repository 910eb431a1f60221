"""
Exception hierarchy for sslexpiry
by BitSpectreLabs

Certificate policy violations are not exceptions: they are returned as
PolicyError outcomes by the chain evaluator. Everything here describes a
failure to obtain a certificate chain at all, or a configuration problem.
"""


class SSLExpiryError(Exception):
    """Base class for all sslexpiry errors."""
    pass


class UnknownPortOrProtocol(SSLExpiryError, ValueError):
    """A port name or STARTTLS protocol name was not recognised."""
    pass


class ConnectError(SSLExpiryError):
    """DNS, TCP, TLS handshake or certificate authorization failure."""
    pass


class ConnectTimeoutError(ConnectError):
    """The server did not complete the handshake in time."""

    def __init__(self, message: str = "Timeout connecting to server"):
        super().__init__(message)


class ProtocolNegotiationError(SSLExpiryError):
    """The server answered a STARTTLS exchange unexpectedly."""
    pass


class ConfigError(SSLExpiryError):
    """Configuration error."""
    pass
