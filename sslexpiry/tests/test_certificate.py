"""
Tests for the certificate data model
by BitSpectreLabs
"""

import pytest
from cryptography.hazmat.primitives import serialization

from sslexpiry.core.certificate import Certificate, CertificateChain, normalize_serial


class TestNormalizeSerial:
    """Tests for serial number normalisation."""

    @pytest.mark.parametrize("serial,expected", [
        ("0a:bc:01", "ABC01"),
        ("0A BC 01", "ABC01"),
        ("abc01", "ABC01"),
        ("00", "0"),
    ])
    def test_forms(self, serial, expected):
        """Test separators, case and leading zeros are ignored."""
        assert normalize_serial(serial) == expected


class TestCertificate:
    """Tests for Certificate.from_der."""

    def test_fields(self, make_cert):
        """Test the decoded fields."""
        cert = make_cert(common_name="www.example.com", issuer_cn="Example CA", serial=0x0ABC)
        raw = cert.public_bytes(serialization.Encoding.DER)
        decoded = Certificate.from_der(raw)
        assert decoded.subject_cn == "www.example.com"
        assert decoded.issuer_cn == "Example CA"
        assert decoded.serial_number == "ABC"
        assert decoded.not_before == cert.not_valid_before_utc
        assert decoded.not_after == cert.not_valid_after_utc
        assert decoded.not_after.tzinfo is not None
        assert decoded.raw == raw
        assert decoded.self_signed is False
        assert decoded.decode() == cert

    def test_self_signed(self, make_cert, make_chain):
        """Test subject equal to issuer marks a self-signed certificate."""
        assert make_chain(make_cert()).leaf.self_signed is True

    def test_invalid_der(self):
        """Test garbage is rejected."""
        with pytest.raises(ValueError):
            Certificate.from_der(b"not a certificate")


class TestCertificateChain:
    """Tests for CertificateChain."""

    def test_sequence(self, make_cert, make_chain):
        """Test length, indexing and iteration."""
        chain = make_chain(make_cert(serial=1), make_cert(serial=2))
        assert len(chain) == 2
        assert chain[1].serial_number == "2"
        assert [cert.serial_number for cert in chain] == ["1", "2"]
        assert chain.leaf is chain[0]

    def test_issuer_of(self, make_cert, make_chain):
        """Test issuers are found by position and traversal ends."""
        leaf = make_cert(common_name="www.example.com", issuer_cn="Example CA")
        intermediate = make_cert(common_name="Example CA", issuer_cn="Example Root")
        root = make_cert(common_name="Example Root")
        chain = make_chain(leaf, intermediate, root)

        assert chain.issuer_of(0) is chain[1]
        assert chain.issuer_of(1) is chain[2]
        assert chain.issuer_of(2) is None

    def test_issuer_of_last_certificate(self, make_cert, make_chain):
        """Test a chain ending without a root."""
        chain = make_chain(make_cert(issuer_cn="Example CA"))
        assert chain.issuer_of(0) is None

    def test_empty(self):
        """Test an empty chain has no leaf."""
        chain = CertificateChain()
        assert len(chain) == 0
        with pytest.raises(ValueError):
            chain.leaf

    def test_from_der_list(self, make_cert):
        """Test building from DER blobs."""
        blobs = [make_cert(serial=n).public_bytes(serialization.Encoding.DER) for n in (1, 2)]
        chain = CertificateChain.from_der_list(blobs)
        assert [cert.serial_number for cert in chain] == ["1", "2"]
