"""
Error taxonomy for the planning engine.

Expected business outcomes (an unsatisfiable intent, a stale readiness
signal) are returned as values. Only malformed input and missing records
raise.
"""

from dataclasses import dataclass
from typing import Optional


class IronplanError(Exception):
    """Base class for all ironplan exceptions."""


class ValidationError(IronplanError, ValueError):
    """Input rejected before any computation begins."""


class NotFoundError(IronplanError, LookupError):
    """A referenced record does not exist in storage."""


class ConfigurationError(IronplanError):
    """Configuration file could not be read or parsed."""


@dataclass(frozen=True)
class AlignmentFailure:
    """
    Selection could not satisfy the requested session intent.

    Returned (never raised) by enforce_intent_alignment. Callers must treat
    it as a hard failure rather than a degraded result.
    """
    error: str
    intent: Optional[str] = None
    aligned_ratio: Optional[float] = None
