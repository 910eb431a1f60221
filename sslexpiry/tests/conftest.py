"""
Shared fixtures for sslexpiry tests
by BitSpectreLabs

Certificates are generated on the fly with cryptography.
"""

import ipaddress
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from sslexpiry.core.certificate import Certificate, CertificateChain


KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)

DateSpec = Union[int, datetime]


def _when(value: DateSpec, now: datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return now + timedelta(days=value)


def _name(common_name: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test"),
    ])


def build_cert(
    not_after: DateSpec = 60,
    not_before: DateSpec = -60,
    common_name: str = "localhost",
    issuer_cn: Optional[str] = None,
    signature: Optional[hashes.HashAlgorithm] = None,
    serial: int = 1,
    rsa_padding=None,
) -> x509.Certificate:
    """Self-signed (or nominally issued) certificate with the given validity."""
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(_name(issuer_cn or common_name))
        .public_key(KEY.public_key())
        .serial_number(serial)
        .not_valid_before(_when(not_before, now))
        .not_valid_after(_when(not_after, now))
    )
    return builder.sign(KEY, signature or hashes.SHA256(), rsa_padding=rsa_padding)


def to_certificate(cert: x509.Certificate) -> Certificate:
    return Certificate.from_der(cert.public_bytes(serialization.Encoding.DER))


def to_chain(*certs: x509.Certificate) -> CertificateChain:
    return CertificateChain(tuple(to_certificate(cert) for cert in certs))


@pytest.fixture
def make_cert():
    """Factory for cryptography certificates."""
    return build_cert


@pytest.fixture
def make_chain():
    """Factory turning cryptography certificates into a CertificateChain."""
    return to_chain


class LoopbackPKI:
    """A CA and a server certificate for 127.0.0.1 / localhost signed by it."""

    def __init__(self):
        now = datetime.now(timezone.utc)
        self.ca_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.server_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

        ca_name = _name("sslexpiry test CA")
        ca_ski = x509.SubjectKeyIdentifier.from_public_key(self.ca_key.public_key())
        self.ca_cert = (
            x509.CertificateBuilder()
            .subject_name(ca_name)
            .issuer_name(ca_name)
            .public_key(self.ca_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(days=1))
            .not_valid_after(now + timedelta(days=365))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True, content_commitment=False, key_encipherment=False,
                    data_encipherment=False, key_agreement=False, key_cert_sign=True,
                    crl_sign=True, encipher_only=False, decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(ca_ski, critical=False)
            .sign(self.ca_key, hashes.SHA256())
        )

        self.server_cert = (
            x509.CertificateBuilder()
            .subject_name(_name("localhost"))
            .issuer_name(ca_name)
            .public_key(self.server_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(days=1))
            .not_valid_after(now + timedelta(days=90))
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.SubjectAlternativeName([
                    x509.DNSName("localhost"),
                    x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                ]),
                critical=False,
            )
            .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(self.server_key.public_key()),
                critical=False,
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ca_ski),
                critical=False,
            )
            .sign(self.ca_key, hashes.SHA256())
        )

    @property
    def ca_pem(self) -> str:
        return self.ca_cert.public_bytes(serialization.Encoding.PEM).decode("ascii")

    def write_server_files(self, directory):
        """Write the server chain and key as PEM files; returns their paths."""
        cert_path = directory / "server.pem"
        key_path = directory / "server.key"
        cert_path.write_bytes(
            self.server_cert.public_bytes(serialization.Encoding.PEM)
            + self.ca_cert.public_bytes(serialization.Encoding.PEM)
        )
        key_path.write_bytes(
            self.server_key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.TraditionalOpenSSL,
                serialization.NoEncryption(),
            )
        )
        return cert_path, key_path


@pytest.fixture(scope="session")
def pki():
    """Session-wide test PKI."""
    return LoopbackPKI()
