"""
Certificate chain policy evaluation
by BitSpectreLabs

Walks every certificate in a chain, checks it against expiry, signature
algorithm, distrust, warning-threshold and lifetime rules, and reduces the
per-certificate results to the single most urgent outcome for the chain.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm

from sslexpiry.core.certificate import Certificate, CertificateChain, normalize_serial
from sslexpiry.core.outcomes import (
    Outcome,
    PolicyError,
    PolicyErrorKind,
    SafeUntil,
    format_date,
    most_urgent,
)

logger = logging.getLogger(__name__)


DAY = timedelta(days=1)
DEFAULT_DAYS = 30

# Leaf certificates issued on or after this date may not outlive MAX_LIFETIME_DAYS
LIFETIME_CUTOVER = datetime(2018, 3, 1, tzinfo=timezone.utc)
MAX_LIFETIME_DAYS = 825

WEAK_SIGNATURE = re.compile(r"md5|sha1(?!\d)", re.IGNORECASE)

SIGNATURE_ALGORITHMS = {
    "1.2.840.113549.1.1.4": "md5WithRSAEncryption",
    "1.2.840.113549.1.1.5": "sha1WithRSAEncryption",
    "1.3.14.3.2.29": "sha1WithRSASignature",
    "1.2.840.113549.1.1.10": "RSASSA-PSS",
    "1.2.840.113549.1.1.11": "sha256WithRSAEncryption",
    "1.2.840.113549.1.1.12": "sha384WithRSAEncryption",
    "1.2.840.113549.1.1.13": "sha512WithRSAEncryption",
    "1.2.840.113549.1.1.14": "sha224WithRSAEncryption",
    "2.16.840.1.101.3.4.3.13": "sha3-224WithRSAEncryption",
    "2.16.840.1.101.3.4.3.14": "sha3-256WithRSAEncryption",
    "2.16.840.1.101.3.4.3.15": "sha3-384WithRSAEncryption",
    "2.16.840.1.101.3.4.3.16": "sha3-512WithRSAEncryption",
    "1.2.840.10045.4.1": "ecdsa-with-SHA1",
    "1.2.840.10045.4.3.1": "ecdsa-with-SHA224",
    "1.2.840.10045.4.3.2": "ecdsa-with-SHA256",
    "1.2.840.10045.4.3.3": "ecdsa-with-SHA384",
    "1.2.840.10045.4.3.4": "ecdsa-with-SHA512",
    "2.16.840.1.101.3.4.3.9": "ecdsa-with-SHA3-224",
    "2.16.840.1.101.3.4.3.10": "ecdsa-with-SHA3-256",
    "2.16.840.1.101.3.4.3.11": "ecdsa-with-SHA3-384",
    "2.16.840.1.101.3.4.3.12": "ecdsa-with-SHA3-512",
    "1.2.840.10040.4.3": "dsa-with-SHA1",
    "2.16.840.1.101.3.4.3.1": "dsa-with-SHA224",
    "2.16.840.1.101.3.4.3.2": "dsa-with-SHA256",
    "1.3.101.112": "Ed25519",
    "1.3.101.113": "Ed448",
}


def signature_algorithm_name(raw: bytes) -> Optional[str]:
    """
    Name of the algorithm a DER certificate is signed with.

    Returns:
        Algorithm name, or None if the algorithm is not recognised
    """
    cert = x509.load_der_x509_certificate(raw)
    return SIGNATURE_ALGORITHMS.get(cert.signature_algorithm_oid.dotted_string)


def signature_hash_name(raw: bytes) -> Optional[str]:
    """
    Name of the digest a DER certificate's signature is computed over.

    Covers algorithms such as RSASSA-PSS whose OID does not name the digest.

    Returns:
        Digest name (e.g. "sha1"), or None if there is none or it is unknown
    """
    cert = x509.load_der_x509_certificate(raw)
    try:
        algorithm = cert.signature_hash_algorithm
    except UnsupportedAlgorithm:
        return None
    return algorithm.name if algorithm is not None else None


def is_weak_signature(name: str) -> bool:
    """
    MD5 and SHA1 are weak; longer SHA digests are not.

    Examples:
        >>> is_weak_signature("sha1WithRSAEncryption")
        True
        >>> is_weak_signature("sha256WithRSAEncryption")
        False
    """
    return bool(WEAK_SIGNATURE.search(name))


class ExemptionPolicy(ABC):
    """Decides whether a certificate in a chain is skipped entirely."""

    @abstractmethod
    def is_exempt(self, chain: CertificateChain, position: int) -> bool:
        """True if the certificate at position must not be evaluated."""
        pass


@dataclass(frozen=True)
class CrossSignExemption(ExemptionPolicy):
    """
    Skip a superseded root once its successor has appeared in the chain.

    Models a CA that keeps serving a cross-signature from an old, expired
    root for client compatibility.
    """
    successor_serial: str
    superseded_serial: str

    def is_exempt(self, chain: CertificateChain, position: int) -> bool:
        if normalize_serial(chain[position].serial_number) != normalize_serial(self.superseded_serial):
            return False
        successor = normalize_serial(self.successor_serial)
        return any(
            normalize_serial(cert.serial_number) == successor
            for cert in chain.certificates[:position]
        )


# Let's Encrypt: ISRG Root X1 cross-signed by the expired DST Root CA X3
ISRG_ROOT_X1_TRANSITION = CrossSignExemption(
    successor_serial="4001772137D4E942B8EE76AA3C640AB7",
    superseded_serial="44AFB080D6A327BA893039862EF8406B",
)

DEFAULT_EXEMPTIONS: Tuple[ExemptionPolicy, ...] = (ISRG_ROOT_X1_TRANSITION,)


@dataclass(frozen=True)
class DistrustRule:
    """
    Date after which leaves from a given authority stop being trusted.

    Attributes:
        issuer_pattern: Regular expression matched against the leaf issuer CN
        distrust_date: When matching certificates become distrusted
        issued_before: Only certificates issued before this date match
    """
    issuer_pattern: str
    distrust_date: datetime
    issued_before: Optional[datetime] = None

    def applies_to(self, cert: Certificate) -> bool:
        if not re.search(self.issuer_pattern, cert.issuer_cn, re.IGNORECASE):
            return False
        return self.issued_before is None or cert.not_before < self.issued_before


_SYMANTEC_ISSUERS = r"Symantec|GeoTrust|thawte|RapidSSL|VeriSign"

# Symantec-operated PKI, in the order browsers withdrew trust
SYMANTEC_DISTRUST: Tuple[DistrustRule, ...] = (
    DistrustRule(
        _SYMANTEC_ISSUERS,
        distrust_date=datetime(2018, 3, 15, tzinfo=timezone.utc),
        issued_before=datetime(2016, 6, 1, tzinfo=timezone.utc),
    ),
    DistrustRule(
        _SYMANTEC_ISSUERS,
        distrust_date=datetime(2018, 9, 13, tzinfo=timezone.utc),
    ),
)

# Opt-in: later intermediates under these names are operated by other CAs
DEFAULT_DISTRUST_RULES: Tuple[DistrustRule, ...] = ()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _position_label(position: int) -> str:
    if position == 0:
        return "Certificate"
    return f"Certificate {position + 1} in chain"


class ChainEvaluator:
    """
    Certificate chain policy evaluator.

    Pure and synchronous: safe to share between concurrently running checks.
    """

    def __init__(
        self,
        days: int = DEFAULT_DAYS,
        exemptions: Sequence[ExemptionPolicy] = DEFAULT_EXEMPTIONS,
        distrust_rules: Sequence[DistrustRule] = DEFAULT_DISTRUST_RULES,
        blocklist: Iterable[str] = (),
        leaf_only: bool = False,
    ):
        """
        Initialize evaluator.

        Args:
            days: Warn when a certificate has fewer days than this left
            exemptions: Policies that skip certificates entirely
            distrust_rules: Authority distrust dates applied to the leaf
            blocklist: Serial numbers that are always rejected
            leaf_only: Only evaluate the leaf certificate
        """
        self.days = days
        self.exemptions = tuple(exemptions)
        self.distrust_rules = tuple(distrust_rules)
        self.blocklist = frozenset(normalize_serial(serial) for serial in blocklist)
        self.leaf_only = leaf_only

    def check_certificate(
        self,
        chain: CertificateChain,
        position: int,
        now: datetime,
    ) -> Outcome:
        """
        Evaluate one certificate of a chain.

        Args:
            chain: The chain the certificate belongs to
            position: Index in the chain, 0 being the leaf
            now: Reference time

        Returns:
            SafeUntil with the certificate's end date, or the first
            PolicyError found
        """
        cert = chain[position]
        pos = _position_label(position)
        is_leaf = position == 0
        end_date = cert.not_after
        end_reason = "expiry"

        if normalize_serial(cert.serial_number) in self.blocklist:
            return PolicyError(
                PolicyErrorKind.BLOCKLISTED, True, None,
                f"{pos} serial number {cert.serial_number} is blocklisted",
            )

        if cert.not_after <= now:
            return PolicyError(
                PolicyErrorKind.EXPIRED, True, cert.not_after,
                f"{pos} expired on {format_date(cert.not_after)}!",
            )

        if is_leaf:
            algorithm = signature_algorithm_name(cert.raw)
            if algorithm is None:
                return PolicyError(
                    PolicyErrorKind.ALGORITHM_UNKNOWN, False, cert.not_after,
                    "Signature algorithm is unknown",
                )
            if is_weak_signature(algorithm):
                return PolicyError(
                    PolicyErrorKind.WEAK_ALGORITHM, True, cert.not_after,
                    f"Signature algorithm is {algorithm}",
                )
            digest = signature_hash_name(cert.raw)
            if digest and is_weak_signature(digest):
                return PolicyError(
                    PolicyErrorKind.WEAK_ALGORITHM, True, cert.not_after,
                    f"Signature algorithm is {algorithm} with {digest}",
                )

            for rule in self.distrust_rules:
                if rule.applies_to(cert):
                    if rule.distrust_date < end_date:
                        end_date = rule.distrust_date
                        end_reason = "distrust"
                    break

        if end_date <= now:
            return PolicyError(
                PolicyErrorKind.DISTRUSTED, True, end_date,
                f"{pos} became distrusted on {format_date(end_date)}!",
            )

        days_to_live = (end_date - now) // DAY
        if days_to_live < self.days:
            plural = "" if days_to_live == 1 else "s"
            return PolicyError(
                PolicyErrorKind.EXPIRING_SOON, False, end_date,
                f"{pos} {end_reason} date is {format_date(end_date)}"
                f" - {days_to_live} day{plural}",
            )

        if is_leaf and cert.not_before >= LIFETIME_CUTOVER:
            lifetime_days = (cert.not_after - cert.not_before) // DAY
            if lifetime_days > MAX_LIFETIME_DAYS:
                return PolicyError(
                    PolicyErrorKind.LIFETIME_TOO_LONG, True, end_date,
                    f"Certificate lifetime of {lifetime_days} days is too long",
                )

        return SafeUntil(end_date)

    def evaluate(self, chain: CertificateChain, now: Optional[datetime] = None) -> Outcome:
        """
        Evaluate a whole chain.

        Every certificate is checked; the most urgent problem wins. With no
        problems the chain is safe until its earliest end date.

        Args:
            chain: Leaf-first certificate chain
            now: Reference time (defaults to the current time)

        Returns:
            SafeUntil or the most urgent PolicyError
        """
        now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        if not chain:
            raise ValueError("Empty certificate chain")
        positions = range(1 if self.leaf_only else len(chain))

        outcomes: List[Outcome] = []
        for position in positions:
            if any(policy.is_exempt(chain, position) for policy in self.exemptions):
                logger.debug("Skipping exempt certificate %s", chain[position].subject_cn)
                continue
            outcomes.append(self.check_certificate(chain, position, now))

        if not outcomes:
            # Everything exempt: fall back to the leaf's own expiry
            return SafeUntil(chain.leaf.not_after)
        return most_urgent(outcomes)


def check_chain(
    chain: CertificateChain,
    days: int = DEFAULT_DAYS,
    now: Optional[datetime] = None,
    **kwargs,
) -> Outcome:
    """
    Check a certificate chain for problems.

    Args:
        chain: Leaf-first certificate chain
        days: Number of days to consider 'soon'
        now: Reference time (defaults to the current time)
        **kwargs: Further ChainEvaluator options

    Returns:
        SafeUntil(date the chain will fail) or the most urgent PolicyError
    """
    return ChainEvaluator(days=days, **kwargs).evaluate(chain, now)
