"""Timeout amount + unit → milliseconds."""

from __future__ import annotations

from relaymap.core.errors import RelayMapConfigurationError

_MS_PER_DAY = 86_400_000
# Average Gregorian month/year, so "1 months" matches 12 of them per year
_DAYS_PER_YEAR = 146_097 / 400

_UNIT_MS: dict[str, float] = {
    "milliseconds": 1,
    "seconds": 1_000,
    "minutes": 60_000,
    "hours": 3_600_000,
    "days": _MS_PER_DAY,
    "weeks": 7 * _MS_PER_DAY,
    "months": _DAYS_PER_YEAR / 12 * _MS_PER_DAY,
    "quarters": _DAYS_PER_YEAR / 4 * _MS_PER_DAY,
    "years": _DAYS_PER_YEAR * _MS_PER_DAY,
}

# Case matters for the one-letter forms: "m" is minutes, "M" is months
_SHORTHANDS = {
    "ms": "milliseconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
    "M": "months",
    "Q": "quarters",
    "y": "years",
}


def normalize_unit(unit: str) -> str:
    """Return the canonical plural unit name, or raise RelayMapConfigurationError."""
    raw = str(unit).strip()
    if raw in _SHORTHANDS:
        return _SHORTHANDS[raw]
    name = raw.lower()
    if name in _UNIT_MS:
        return name
    if f"{name}s" in _UNIT_MS:
        return f"{name}s"
    raise RelayMapConfigurationError(
        f"Unknown timeout unit: {unit!r}",
        code="invalid_timeout_unit",
        details={"unit": unit, "known": sorted(_UNIT_MS)},
    )


def to_milliseconds(amount: float, unit: str) -> int:
    """Convert a duration to whole milliseconds (rounded)."""
    return round(float(amount) * _UNIT_MS[normalize_unit(unit)])
