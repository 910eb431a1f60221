"""
sslexpiry - TLS certificate expiry and policy checker
by BitSpectreLabs

Connects to servers (optionally via SMTP or IMAP STARTTLS), fetches their
certificate chains and reports which ones expire soon or break policy.
"""

__version__ = "1.0.0"
__author__ = "BitSpectreLabs"
__license__ = "MIT"

from sslexpiry.core.check_cert import ChainEvaluator, check_chain
from sslexpiry.core.connect import connect
from sslexpiry.core.outcomes import ConnectionFailure, PolicyError, SafeUntil

__all__ = [
    "ChainEvaluator",
    "check_chain",
    "connect",
    "ConnectionFailure",
    "PolicyError",
    "SafeUntil",
]
