"""
Certificate and certificate chain data model
by BitSpectreLabs

A chain is an owned, ordered tuple of certificates, leaf first, built once
from the DER blobs the TLS stack hands back. Issuer lookup is positional,
so traversal always terminates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID


def _common_name(name: x509.Name) -> str:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return ""
    value = attributes[0].value
    return value if isinstance(value, str) else value.decode("utf-8", errors="replace")


def normalize_serial(serial: str) -> str:
    """
    Normalise a hex serial number for comparison.

    Examples:
        >>> normalize_serial("0a:bc:01")
        'ABC01'
    """
    return serial.replace(":", "").replace(" ", "").upper().lstrip("0") or "0"


@dataclass(frozen=True)
class Certificate:
    """A single X.509 certificate, reduced to what the policy checks need."""
    subject_cn: str
    issuer_cn: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    raw: bytes = field(repr=False)
    self_signed: bool = False

    @classmethod
    def from_der(cls, raw: bytes) -> "Certificate":
        """
        Decode a DER-encoded certificate.

        Raises:
            ValueError: if the data is not a valid certificate
        """
        cert = x509.load_der_x509_certificate(raw)
        return cls(
            subject_cn=_common_name(cert.subject),
            issuer_cn=_common_name(cert.issuer),
            serial_number=format(cert.serial_number, "X"),
            not_before=cert.not_valid_before_utc,
            not_after=cert.not_valid_after_utc,
            raw=bytes(raw),
            self_signed=cert.subject == cert.issuer,
        )

    def decode(self) -> x509.Certificate:
        """Full cryptography view of the certificate."""
        return x509.load_der_x509_certificate(self.raw)


@dataclass(frozen=True)
class CertificateChain:
    """Leaf certificate followed by its issuers, optionally ending at a root."""
    certificates: Tuple[Certificate, ...] = ()

    @classmethod
    def from_der_list(cls, blobs: Iterable[bytes]) -> "CertificateChain":
        return cls(tuple(Certificate.from_der(blob) for blob in blobs))

    @property
    def leaf(self) -> Certificate:
        if not self.certificates:
            raise ValueError("Empty certificate chain")
        return self.certificates[0]

    def issuer_of(self, position: int) -> Optional[Certificate]:
        """
        Return the certificate that issued the one at position.

        None at the end of the chain, or for a self-signed root.
        """
        if self.certificates[position].self_signed:
            return None
        if position + 1 < len(self.certificates):
            return self.certificates[position + 1]
        return None

    def __iter__(self) -> Iterator[Certificate]:
        return iter(self.certificates)

    def __len__(self) -> int:
        return len(self.certificates)

    def __getitem__(self, position: int) -> Certificate:
        return self.certificates[position]
