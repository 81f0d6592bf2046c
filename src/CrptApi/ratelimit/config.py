# === NAVMAP v1 ===
# {
#   "module": "CrptApi.ratelimit.config",
#   "purpose": "RateSpec parsing and normalization for admission gate configuration.",
#   "sections": [
#     {
#       "id": "ratespec",
#       "name": "RateSpec",
#       "anchor": "class-ratespec",
#       "kind": "class"
#     },
#     {
#       "id": "parse-rate-string",
#       "name": "parse_rate_string",
#       "anchor": "function-parse-rate-string",
#       "kind": "function"
#     },
#     {
#       "id": "normalize-duration-name",
#       "name": "normalize_duration_name",
#       "anchor": "function-normalize-duration-name",
#       "kind": "function"
#     },
#     {
#       "id": "get-schema-summary",
#       "name": "get_schema_summary",
#       "anchor": "function-get-schema-summary",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""RateSpec parsing and normalization for admission gate configuration.

Turns rate strings such as "5/second" or "3/250ms" into the frozen
RateSpec values that size an :class:`~CrptApi.ratelimit.gate.AdmissionGate`.
A rate is always "``limit`` admissions per one ``duration``", so the window of
the gate is exactly one unit of the named duration.

Design:
- **Human-readable input**: "5/second", "300/minute", "3/250ms"
- **Structured output**: RateSpec(limit=5, interval_ms=1000)
- **Time-unit constructor**: ``RateSpec.from_time_unit("minute", 100)``
- **Strict validation**: non-positive limits and unknown units are rejected

Example:
    >>> from CrptApi.ratelimit.config import parse_rate_string
    >>> parse_rate_string("100/minute")
    RateSpec(limit=100, interval_ms=60000)
"""

import re
from dataclasses import dataclass
from typing import Dict, List

from CrptApi.errors import ConfigurationError

# ============================================================================
# Constants & Enums
# ============================================================================

# Duration constants (in milliseconds)
DURATION_MS = {
    "millisecond": 1,
    "second": 1_000,
    "minute": 60 * 1_000,
    "hour": 60 * 60 * 1_000,
    "day": 24 * 60 * 60 * 1_000,
}

# Short aliases, including the plural unit names used by timeunit-style callers
DURATION_ALIASES = {
    "ms": "millisecond",
    "milliseconds": "millisecond",
    "s": "second",
    "sec": "second",
    "seconds": "second",
    "m": "minute",
    "min": "minute",
    "minutes": "minute",
    "h": "hour",
    "hr": "hour",
    "hours": "hour",
    "d": "day",
    "days": "day",
}

_RATE_PATTERN = re.compile(r"^(\d+)\s*/\s*(\d*)\s*([A-Za-z]+)$")


# ============================================================================
# Data Models
# ============================================================================


@dataclass(frozen=True)
class RateSpec:
    """Normalized rate specification.

    Represents a single sliding window (e.g., "5 per second").

    Attributes:
        limit: Number of admissions allowed inside one window
        interval_ms: Window duration in milliseconds
    """

    limit: int
    interval_ms: int

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ConfigurationError(f"Limit must be positive, got: {self.limit}")
        if self.interval_ms <= 0:
            raise ConfigurationError(f"Interval must be positive, got: {self.interval_ms}ms")

    @classmethod
    def from_time_unit(cls, unit: str, limit: int) -> "RateSpec":
        """Build a spec allowing ``limit`` admissions per one ``unit``."""
        return cls(limit=limit, interval_ms=DURATION_MS[normalize_duration_name(unit)])

    @property
    def window_seconds(self) -> float:
        """Window length in seconds."""
        return self.interval_ms / 1000.0

    @property
    def rps(self) -> float:
        """Requests per second."""
        return (self.limit * 1000) / self.interval_ms

    def __str__(self) -> str:
        """Human-readable representation."""
        for name in ("day", "hour", "minute", "second"):
            if self.interval_ms == DURATION_MS[name]:
                return f"{self.limit}/{name}"
        return f"{self.limit}/{self.interval_ms}ms"

    def __repr__(self) -> str:
        return f"RateSpec(limit={self.limit}, interval_ms={self.interval_ms})"


# ============================================================================
# Parsing
# ============================================================================


def normalize_duration_name(unit: str) -> str:
    """Return the canonical duration name for ``unit`` or raise ConfigurationError."""
    name = unit.strip().lower()
    name = DURATION_ALIASES.get(name, name)
    if name not in DURATION_MS:
        raise ConfigurationError(
            f"Unknown duration: {unit!r}. Supported: {list(DURATION_MS.keys())}"
        )
    return name


def parse_rate_string(spec: str) -> RateSpec:
    """Parse ``"{limit}/{duration}"`` into a RateSpec.

    Format: "{limit}/{duration}" or "{limit}/{count}{duration}" where duration
    is millisecond/second/minute/hour/day or one of its aliases.

    Examples:
        "5/second" is 5 per 1000 ms, "10/hr" is 10 per 3600000 ms,
        and "3/250ms" is 3 per 250 ms.

    Args:
        spec: Rate string, surrounding whitespace allowed

    Returns:
        The parsed RateSpec

    Raises:
        ConfigurationError: If spec format is invalid or unparseable
    """
    match = _RATE_PATTERN.match(spec.strip())
    if not match:
        raise ConfigurationError(
            f"Invalid rate spec: {spec!r}. Expected format: '5/second', '300/minute', etc."
        )

    limit_str, count_str, duration_str = match.groups()
    count = int(count_str) if count_str else 1
    if count <= 0:
        raise ConfigurationError(f"Duration multiplier must be positive in {spec!r}")

    interval_ms = DURATION_MS[normalize_duration_name(duration_str)] * count
    return RateSpec(limit=int(limit_str), interval_ms=interval_ms)


def get_schema_summary() -> Dict[str, object]:
    """Get summary of rate spec schema for documentation."""
    examples: List[str] = ["5/second", "100/minute", "1000/hour", "3/250ms"]
    return {
        "format": "{limit}/{duration}",
        "duration_options": "millisecond, ms, second, sec, s, minute, min, m, hour, hr, h, day, d",
        "examples": examples,
        "default": "5/second",
    }


__all__ = [
    "DURATION_MS",
    "RateSpec",
    "normalize_duration_name",
    "parse_rate_string",
    "get_schema_summary",
]
