"""
Fetch a server's certificate chain
by BitSpectreLabs

TCP connect, optional STARTTLS exchange, TLS upgrade of the same stream,
then extraction of the verified peer chain. One timer covers the whole
sequence and one socket is used per call.
"""

import asyncio
import logging
import ssl
from typing import Optional, Union

from sslexpiry.core.certificate import CertificateChain
from sslexpiry.core.exceptions import ConnectError, ConnectTimeoutError
from sslexpiry.core.ports import resolve_port
from sslexpiry.core.starttls import DEFAULT_CLIENT_NAME, get_negotiator, negotiate

logger = logging.getLogger(__name__)


def create_ssl_context(ca: Optional[str] = None) -> ssl.SSLContext:
    """
    Verifying client context.

    Args:
        ca: PEM data to trust instead of the system trust store
    """
    if ca:
        return ssl.create_default_context(cadata=ca)
    return ssl.create_default_context()


def _abort(writer: Optional[asyncio.StreamWriter]) -> None:
    if writer is not None:
        writer.transport.abort()


async def connect(
    servername: str,
    port: Union[int, str, None] = None,
    protocol: Optional[str] = None,
    timeout: Optional[float] = None,
    ca: Optional[str] = None,
    client_name: str = DEFAULT_CLIENT_NAME,
) -> CertificateChain:
    """
    Connect to a server, negotiate TLS and return its certificate chain.

    Args:
        servername: DNS name (or address) to connect to and verify against
        port: Port number, digit string or service name (default 443)
        protocol: STARTTLS protocol; defaults to the one implied by port
        timeout: Seconds allowed from connect to finished handshake
        ca: PEM data replacing the system trust store
        client_name: Name announced in SMTP EHLO

    Returns:
        Verified chain, leaf first, including the trust anchor

    Raises:
        UnknownPortOrProtocol: before any I/O, for a bad port or protocol
        ProtocolNegotiationError: if the STARTTLS exchange fails
        ConnectTimeoutError: if the timeout expires
        ConnectError: for unusable CA data, or any other network, TLS or
            verification failure
    """
    port_info = resolve_port(port)
    protocol = protocol or port_info.protocol or "none"
    get_negotiator(protocol)
    try:
        context = create_ssl_context(ca)
    except (ssl.SSLError, ValueError) as e:
        raise ConnectError(f"Invalid CA certificates: {e}") from e

    writer: Optional[asyncio.StreamWriter] = None
    try:
        async with asyncio.timeout(timeout):
            logger.debug("Connecting to %s:%d (%s)", servername, port_info.port, protocol)
            reader, writer = await asyncio.open_connection(servername, port_info.port)
            await negotiate(reader, writer, protocol, client_name=client_name)
            await writer.start_tls(context, server_hostname=servername)
        ssl_object = writer.get_extra_info("ssl_object")
        if ssl_object is None:
            raise ConnectError("TLS session was not established")
        chain = CertificateChain.from_der_list(ssl_object.get_verified_chain())
    except TimeoutError as e:
        logger.debug("Timeout connecting to %s:%d", servername, port_info.port)
        raise ConnectTimeoutError() from e
    except ssl.SSLCertVerificationError as e:
        raise ConnectError(e.verify_message or str(e)) from e
    except (OSError, ValueError) as e:
        raise ConnectError(str(e) or e.__class__.__name__) from e
    finally:
        _abort(writer)

    if not chain:
        raise ConnectError("Server presented no certificate")
    logger.debug("Got %d certificate(s) from %s", len(chain), servername)
    return chain
