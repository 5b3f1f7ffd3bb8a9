"""Violation Normalizer: calendar-day parsing, type aliases, callout grouping.

Every history is reduced to a chronological list of ``NormalizedViolation``
before replay. Dates are compared as plain calendar days: a time component
or timezone suffix on the input never moves the day.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence, Union

from pydantic import ValidationError

from tierwatch.core.exceptions import InvalidDateError
from tierwatch.models.violation import (
    LEGACY_ALIASES,
    NormalizedViolation,
    SkippedViolation,
    Violation,
    ViolationType,
)

log = logging.getLogger(__name__)

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_FALLBACK_FORMATS = ("%m/%d/%Y", "%m-%d-%Y", "%Y/%m/%d")


def parse_calendar_date(value: Any) -> date:
    """Resolve a date-like value to its calendar day.

    ``"2023-12-07"`` and ``"2023-12-07T00:00:00.000Z"`` both yield
    ``date(2023, 12, 7)``: the leading ``YYYY-MM-DD`` is taken literally and
    no UTC/local conversion is applied. ``datetime`` values contribute their
    own wall-clock date.

    Raises:
        InvalidDateError: the value cannot be read as a calendar day.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(value)

    text = value.strip()
    match = _ISO_PREFIX.match(text)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError as exc:
            raise InvalidDateError(value, f"Invalid calendar date: {value!r} ({exc})") from exc

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidDateError(value)


def canonical_type(tag: Union[str, ViolationType, None]) -> ViolationType:
    """Map a recorded type tag (canonical or legacy alias) to ``ViolationType``."""
    if isinstance(tag, ViolationType):
        return tag
    if not tag:
        return ViolationType.UNKNOWN
    text = " ".join(str(tag).split())
    lowered = text.lower()
    for member in ViolationType:
        if member.value.lower() == lowered:
            return member
    return LEGACY_ALIASES.get(lowered, ViolationType.UNKNOWN)


def group_consecutive_callouts(
    violations: Sequence[NormalizedViolation],
) -> list[NormalizedViolation]:
    """Flag callouts one calendar day after the immediately preceding callout.

    Each billable callout is compared only with the callout right before it,
    so an unbroken run of any length keeps its first day billable and waives
    the rest. Covered or protected callouts neither start nor break a run.
    Non-callouts pass through untouched, in chronological order.
    """
    ordered = sorted(violations, key=lambda v: (v.day, v.source_index))
    grouped: list[NormalizedViolation] = []
    previous: Optional[date] = None
    for violation in ordered:
        if violation.kind.is_callout and not violation.exempt:
            consecutive = previous is not None and (violation.day - previous).days == 1
            previous = violation.day
            if consecutive != violation.consecutive:
                violation = violation.model_copy(update={"consecutive": consecutive})
        grouped.append(violation)
    return grouped


def billable_callouts(violations: Sequence[NormalizedViolation]) -> list[NormalizedViolation]:
    """Callout instances left after consecutive grouping."""
    return [
        v for v in group_consecutive_callouts(violations)
        if v.kind.is_callout and not v.exempt and not v.consecutive
    ]


def _exemption(violation: Violation) -> tuple[bool, str]:
    if violation.protected_absence:
        return True, f"Protected Abs: {violation.protected_absence_reason}".rstrip(": ")
    if violation.shift_covered:
        return True, "Shift Covered"
    return False, ""


def normalize_violations(
    violations: Iterable[Union[Violation, dict[str, Any]]],
    *,
    reset_effective_date: Optional[date] = None,
    strict: bool = False,
) -> tuple[list[NormalizedViolation], list[SkippedViolation]]:
    """Parse, truncate, sort and group a raw violation history.

    Returns the chronological normalized list together with the entries that
    could not be read. The caller's sequence is never modified.

    Raises:
        InvalidDateError: only when ``strict`` is set.
    """
    normalized: list[NormalizedViolation] = []
    skipped: list[SkippedViolation] = []

    for index, raw in enumerate(violations):
        try:
            violation = raw if isinstance(raw, Violation) else Violation.model_validate(raw)
        except ValidationError as exc:
            if strict:
                raise
            log.warning("Skipping malformed violation #%d: %s", index, exc.errors()[0]["msg"])
            skipped.append(
                SkippedViolation(
                    source_index=index,
                    raw_date=str(raw.get("date", "")) if isinstance(raw, dict) else "",
                    type=str(raw.get("type", "")) if isinstance(raw, dict) else "",
                    reason=str(exc.errors()[0]["msg"]),
                )
            )
            continue

        try:
            day = parse_calendar_date(violation.date)
        except InvalidDateError as exc:
            if strict:
                raise
            log.warning("Skipping violation #%d (%s): %s", index, violation.type, exc)
            skipped.append(
                SkippedViolation(
                    source_index=index,
                    raw_date=str(violation.date),
                    type=violation.type,
                    reason=str(exc),
                    employee_id=violation.employee_id or None,
                )
            )
            continue

        if reset_effective_date is not None and day < reset_effective_date:
            continue

        exempt, reason = _exemption(violation)
        normalized.append(
            NormalizedViolation(
                day=day,
                kind=canonical_type(violation.type),
                raw_type=violation.type,
                source_index=index,
                exempt=exempt,
                exempt_reason=reason,
            )
        )

    return group_consecutive_callouts(normalized), skipped
