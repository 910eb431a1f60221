"""Core connection and certificate policy modules."""

from sslexpiry.core.exceptions import (
    SSLExpiryError,
    UnknownPortOrProtocol,
    ConnectError,
    ConnectTimeoutError,
    ProtocolNegotiationError,
    ConfigError,
)
from sslexpiry.core.ports import PortInfo, resolve_port
from sslexpiry.core.starttls import LineStream, negotiate
from sslexpiry.core.certificate import Certificate, CertificateChain
from sslexpiry.core.connect import connect
from sslexpiry.core.outcomes import (
    Outcome,
    SafeUntil,
    PolicyError,
    PolicyErrorKind,
    ConnectionFailure,
    compare_outcomes,
    rank_results,
    serialize_outcome,
)
from sslexpiry.core.check_cert import (
    ChainEvaluator,
    ExemptionPolicy,
    CrossSignExemption,
    DistrustRule,
    check_chain,
)
from sslexpiry.core.targets import Target, parse_target, read_server_file
from sslexpiry.core.runner import check_server, check_servers
from sslexpiry.core.config import (
    ConfigManager,
    SSLExpiryConfig,
    CheckConfig,
    OutputConfig,
    AdvancedConfig,
)
