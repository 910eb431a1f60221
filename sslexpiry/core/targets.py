"""
Target specifications and server list files
by BitSpectreLabs

A target is written ``[!]<host>[:<port>][/<protocol>]``. The leading ``!``
only marks the target for display; it is removed from the host name.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Union


@dataclass(frozen=True)
class Target:
    """A server to check, as written by the user."""
    label: str
    servername: str
    port: Optional[str] = None
    protocol: Optional[str] = None


def parse_target(spec: str) -> Target:
    """
    Split a target specification into its parts.

    Examples:
        >>> parse_target("mail.example.com:submission")
        Target(label='mail.example.com:submission', servername='mail.example.com', port='submission', protocol=None)
        >>> parse_target("!example.com:8443/none").servername
        'example.com'
    """
    address, _, protocol = spec.partition("/")
    if address.startswith("!"):
        address = address[1:]

    if address.startswith("["):
        # [IPv6 literal]:port
        host, _, rest = address[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    else:
        host, _, port = address.partition(":")

    return Target(
        label=spec,
        servername=host,
        port=port or None,
        protocol=protocol or None,
    )


def parse_server_lines(lines) -> Iterator[str]:
    """Yield target specifications, ignoring comments and blank lines."""
    for line in lines:
        line = line.split("#", 1)[0].strip()
        if line:
            yield line


def read_server_file(path: Union[str, Path]) -> List[str]:
    """
    Read target specifications from a file, one per line.

    Anything after a '#' is a comment.
    """
    with open(path, "r", encoding="utf-8") as f:
        return list(parse_server_lines(f))
