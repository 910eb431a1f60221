"""
STARTTLS negotiation over a plaintext asyncio stream
by BitSpectreLabs

Runs the line-oriented exchange a mail server expects before it will switch
the connection to TLS. Supported protocols are 'none', 'smtp' and 'imap'.
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, Dict, Optional

from sslexpiry.core.exceptions import ProtocolNegotiationError, UnknownPortOrProtocol

logger = logging.getLogger(__name__)


DEFAULT_CLIENT_NAME = "mail.example.com"

# Wire encoding: bytes pass through one-to-one
ENCODING = "latin-1"

STARTTLS_WORD = re.compile(r"\bSTARTTLS\b")


class LineStream:
    """
    Line-at-a-time view of an asyncio reader/writer pair.

    readline() suspends until a complete line has arrived. A stream that
    closes part way through a line is a negotiation failure, never a
    partial line.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer

    async def readline(self) -> str:
        """Read one line, without its CR/LF terminator."""
        try:
            data = await self.reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            raise ProtocolNegotiationError(
                "Connection closed by server during STARTTLS negotiation"
            ) from e
        except asyncio.LimitOverrunError as e:
            raise ProtocolNegotiationError(
                "Line too long during STARTTLS negotiation"
            ) from e
        line = data.decode(ENCODING).rstrip("\r\n")
        logger.debug("S: %s", line)
        return line

    async def writeline(self, line: str) -> None:
        """Send one line, CR/LF terminated."""
        logger.debug("C: %s", line)
        self.writer.write(line.encode(ENCODING) + b"\r\n")
        await self.writer.drain()


async def _none(stream: LineStream, client_name: str) -> None:
    """Plain TLS: nothing to say first."""


async def _smtp(stream: LineStream, client_name: str) -> None:
    line = await stream.readline()
    if not line.startswith("220 "):
        raise ProtocolNegotiationError(f"Unexpected SMTP greeting: {line}")
    await stream.writeline(f"EHLO {client_name}")
    line = await stream.readline()
    if not line.startswith("250-"):
        raise ProtocolNegotiationError(f"Unexpected EHLO response: {line}")
    found = False
    while True:
        line = await stream.readline()
        if line.startswith("250-STARTTLS"):
            found = True
        if not line.startswith("250-"):
            break
    if not line.startswith("250 "):
        raise ProtocolNegotiationError(f"Unexpected EHLO response: {line}")
    if not found:
        raise ProtocolNegotiationError("SMTP server does not support STARTTLS")
    await stream.writeline("STARTTLS")
    line = await stream.readline()
    if not line.startswith("220 "):
        raise ProtocolNegotiationError(f"Unexpected STARTTLS response: {line}")


async def _imap(stream: LineStream, client_name: str) -> None:
    line = await stream.readline()
    if not line.startswith("* OK"):
        raise ProtocolNegotiationError(f"Unexpected IMAP greeting: {line}")
    await stream.writeline("a CAPABILITY")
    line = await stream.readline()
    if not line.startswith("* CAPABILITY"):
        raise ProtocolNegotiationError(f"Unexpected IMAP CAPABILITY response: {line}")
    if not STARTTLS_WORD.search(line):
        raise ProtocolNegotiationError("IMAP server does not support STARTTLS")
    line = await stream.readline()
    if not line.startswith("a OK"):
        raise ProtocolNegotiationError(f"Unexpected IMAP CAPABILITY response: {line}")
    await stream.writeline("a STARTTLS")
    line = await stream.readline()
    if not line.startswith("a OK"):
        raise ProtocolNegotiationError(f"Unexpected IMAP STARTTLS response: {line}")


PROTOCOLS: Dict[str, Callable[[LineStream, str], Awaitable[None]]] = {
    "none": _none,
    "smtp": _smtp,
    "imap": _imap,
}


def get_negotiator(protocol: Optional[str]) -> Callable[[LineStream, str], Awaitable[None]]:
    """
    Look up the handshake for a protocol name.

    Raises:
        UnknownPortOrProtocol: if the name is not one of PROTOCOLS
    """
    handler = PROTOCOLS.get(protocol or "none")
    if handler is None:
        raise UnknownPortOrProtocol(f"Unknown protocol {protocol}")
    return handler


async def negotiate(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    protocol: Optional[str] = None,
    client_name: str = DEFAULT_CLIENT_NAME,
) -> None:
    """
    Perform a STARTTLS-type exchange so the stream is ready for TLS.

    Args:
        reader: Plaintext stream reader
        writer: Plaintext stream writer
        protocol: 'none' (or None), 'smtp' or 'imap'
        client_name: Name announced in SMTP EHLO

    Raises:
        UnknownPortOrProtocol: before any I/O, if the protocol is unknown
        ProtocolNegotiationError: if the server answers unexpectedly or
            does not offer STARTTLS
    """
    handler = get_negotiator(protocol)
    await handler(LineStream(reader, writer), client_name)
