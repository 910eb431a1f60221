"""
Check many servers concurrently
by BitSpectreLabs

One task per target. Each task writes exactly once to its own key in the
results mapping, so no locking is needed; the report depends only on the
finished set of outcomes, never on completion order.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, Optional

from sslexpiry.core.certificate import CertificateChain
from sslexpiry.core.check_cert import DEFAULT_DAYS, ChainEvaluator
from sslexpiry.core.connect import connect
from sslexpiry.core.exceptions import SSLExpiryError
from sslexpiry.core.outcomes import ConnectionFailure, Outcome
from sslexpiry.core.starttls import DEFAULT_CLIENT_NAME
from sslexpiry.core.targets import parse_target

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 30.0

Connector = Callable[..., Awaitable[CertificateChain]]


async def check_server(
    spec: str,
    evaluator: ChainEvaluator,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    now: Optional[datetime] = None,
    ca: Optional[str] = None,
    client_name: str = DEFAULT_CLIENT_NAME,
    connector: Connector = connect,
) -> Outcome:
    """
    Fetch and evaluate one target's chain.

    Returns:
        The chain's outcome, or ConnectionFailure if it could not be fetched
    """
    target = parse_target(spec)
    try:
        chain = await connector(
            target.servername,
            target.port,
            target.protocol,
            timeout,
            ca,
            client_name=client_name,
        )
    except SSLExpiryError as e:
        logger.debug("%s: %s", spec, e)
        return ConnectionFailure(str(e))
    return evaluator.evaluate(chain, now)


async def check_servers(
    specs: Iterable[str],
    days: int = DEFAULT_DAYS,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    blocklist: Iterable[str] = (),
    ignore_chain: bool = False,
    now: Optional[datetime] = None,
    ca: Optional[str] = None,
    client_name: str = DEFAULT_CLIENT_NAME,
    connector: Connector = connect,
    evaluator: Optional[ChainEvaluator] = None,
) -> Dict[str, Outcome]:
    """
    Check every target concurrently.

    Args:
        specs: Target specifications; duplicates are checked once
        days: Warning threshold in days
        timeout: Per-target timeout in seconds
        blocklist: Certificate serial numbers to reject
        ignore_chain: Only evaluate leaf certificates
        now: Reference time for the policy checks
        ca: PEM data replacing the system trust store
        client_name: Name announced in SMTP EHLO
        connector: Chain fetcher (defaults to connect)
        evaluator: Pre-built evaluator, overriding days/blocklist/ignore_chain

    Returns:
        Mapping of target specification to outcome
    """
    if evaluator is None:
        evaluator = ChainEvaluator(days=days, blocklist=blocklist, leaf_only=ignore_chain)
    results: Dict[str, Outcome] = {}

    async def run(spec: str) -> None:
        results[spec] = await check_server(
            spec, evaluator, timeout=timeout, now=now, ca=ca,
            client_name=client_name, connector=connector,
        )

    unique = list(dict.fromkeys(specs))
    logger.info("Checking %d server(s)", len(unique))
    await asyncio.gather(*(run(spec) for spec in unique))
    return results
