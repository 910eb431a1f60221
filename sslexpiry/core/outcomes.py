"""
Check outcomes and their urgency ordering
by BitSpectreLabs

Every target ends in exactly one outcome: the date its chain stays safe
until, a certificate policy violation, or a failure to connect at all.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

DATE_FORMAT = "%d %b %Y"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_date(value: datetime) -> str:
    """Format a date the way outcome messages show it."""
    return value.strftime(DATE_FORMAT)


class PolicyErrorKind(Enum):
    """Certificate policy violations."""
    EXPIRED = "expired"
    BLOCKLISTED = "blocklisted"
    ALGORITHM_UNKNOWN = "algorithm_unknown"
    WEAK_ALGORITHM = "weak_algorithm"
    DISTRUSTED = "distrusted"
    EXPIRING_SOON = "expiring_soon"
    LIFETIME_TOO_LONG = "lifetime_too_long"


@dataclass(frozen=True)
class SafeUntil:
    """No problem found; the chain is good until this date."""
    date: datetime


@dataclass(frozen=True)
class PolicyError:
    """
    A certificate policy violation.

    Attributes:
        kind: Which check failed
        severe: True if the certificate is failing or about to fail,
            False for an advisory warning
        end_date: When the certificate stops being usable, if known
        message: Human-readable description
    """
    kind: PolicyErrorKind
    severe: bool
    end_date: Optional[datetime]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "message": self.message,
            "severe": self.severe,
            "kind": self.kind.value,
        }
        if self.end_date is not None:
            data["end_date"] = self.end_date.isoformat()
        return data


@dataclass(frozen=True)
class ConnectionFailure:
    """The chain could not be fetched at all."""
    message: str

    @property
    def severe(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "severe": True}


Outcome = Union[SafeUntil, PolicyError, ConnectionFailure]


def is_problem(outcome: Outcome) -> bool:
    """True for anything other than SafeUntil."""
    return not isinstance(outcome, SafeUntil)


def urgency_key(outcome: Outcome) -> Tuple[int, int, int, datetime]:
    """
    Sort key placing the most urgent outcome first.

    Connection failures come first, then policy errors (severe before
    advisory, those with an end date before those without, earlier end
    dates first), then safe dates (earliest first).
    """
    if isinstance(outcome, ConnectionFailure):
        return (0, 0, 0, _EPOCH)
    if isinstance(outcome, PolicyError):
        if outcome.end_date is None:
            return (1, 0 if outcome.severe else 1, 1, _EPOCH)
        return (1, 0 if outcome.severe else 1, 0, outcome.end_date)
    if isinstance(outcome, SafeUntil):
        return (2, 0, 0, outcome.date)
    raise TypeError(f"Not an outcome: {outcome!r}")


def compare_outcomes(a: Outcome, b: Outcome) -> int:
    """
    Compare two outcomes by urgency.

    Returns:
        Less than zero if a is more urgent, greater than zero if b is,
        zero if they are equally urgent
    """
    key_a = urgency_key(a)
    key_b = urgency_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def most_urgent(outcomes: List[Outcome]) -> Outcome:
    """Pick the single worst outcome; the first one wins ties."""
    if not outcomes:
        raise ValueError("No outcomes to rank")
    return min(outcomes, key=urgency_key)


def rank_results(results: Mapping[str, Outcome]) -> List[str]:
    """
    Order result labels most urgent first, ties broken by label.

    Args:
        results: Mapping of target label to outcome

    Returns:
        Labels in report order
    """
    return sorted(results, key=lambda label: (urgency_key(results[label]), label))


def serialize_outcome(outcome: Outcome) -> Union[str, Dict[str, Any]]:
    """JSON-ready form: an ISO date for SafeUntil, a dict otherwise."""
    if isinstance(outcome, SafeUntil):
        return outcome.date.isoformat()
    return outcome.to_dict()
