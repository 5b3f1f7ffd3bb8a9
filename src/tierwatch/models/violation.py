"""Violation models: the raw attendance entry and its normalized form."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from tierwatch.core.exceptions import InvalidDateError
from tierwatch.core.types import DateLike


class ViolationType(StrEnum):
    TARDY_1_5 = "Tardy (1-5 min)"
    TARDY_6_11 = "Tardy (6-11 min)"
    TARDY_12_29 = "Tardy (12-29 min)"
    TARDY_30_PLUS = "Tardy (30+ min)"
    CALLOUT = "Call Out"
    NO_SHOW = "No Call No Show"
    EARLY_ARRIVAL = "Early Arrival"
    SHIFT_PICKUP = "Shift Pickup"
    UNKNOWN = "Unknown"

    @property
    def is_tardy(self) -> bool:
        return self in TARDY_BANDS

    @property
    def is_callout(self) -> bool:
        return self is ViolationType.CALLOUT

    @property
    def is_positive(self) -> bool:
        return self in (ViolationType.EARLY_ARRIVAL, ViolationType.SHIFT_PICKUP)


TARDY_BANDS = (
    ViolationType.TARDY_1_5,
    ViolationType.TARDY_6_11,
    ViolationType.TARDY_12_29,
    ViolationType.TARDY_30_PLUS,
)

# Keys are lower-cased with whitespace collapsed.
LEGACY_ALIASES: dict[str, ViolationType] = {
    "callout": ViolationType.CALLOUT,
    "call-out": ViolationType.CALLOUT,
    "call off": ViolationType.CALLOUT,
    "no show": ViolationType.NO_SHOW,
    "no-show": ViolationType.NO_SHOW,
    "ncns": ViolationType.NO_SHOW,
    "no call/no show": ViolationType.NO_SHOW,
    "no call no-show": ViolationType.NO_SHOW,
    "shift pick-up": ViolationType.SHIFT_PICKUP,
    "shift pick up": ViolationType.SHIFT_PICKUP,
    "early": ViolationType.EARLY_ARRIVAL,
}


class Violation(BaseModel):
    """A single attendance entry as recorded by the application.

    ``date`` is kept exactly as supplied; the normalizer resolves it to a
    calendar day during replay.
    """

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    date: DateLike
    type: str = Field(validation_alias=AliasChoices("type", "violationType", "violation_type"))
    shift_covered: bool = Field(default=False, alias="shiftCovered")
    protected_absence: bool = Field(default=False, alias="protectedAbsence")
    protected_absence_reason: str = Field(default="", alias="protectedAbsenceReason")
    employee_id: str = Field(default="", alias="employeeId")

    @field_validator("date", mode="before")
    @classmethod
    def _date_is_date_like(cls, value: object) -> object:
        # Numbers would otherwise be read as Unix timestamps.
        if not isinstance(value, (str, dt.date)):
            raise InvalidDateError(value, f"Expected a date string or date, got {type(value).__name__}")
        return value


class NormalizedViolation(BaseModel):
    """A violation resolved to a calendar day and canonical type."""

    model_config = {"frozen": True}

    day: dt.date
    kind: ViolationType
    raw_type: str
    source_index: int
    exempt: bool = False
    exempt_reason: str = ""
    consecutive: bool = False  # waived: one calendar day after the previous billable callout


class SkippedViolation(BaseModel):
    """A violation excluded from replay: malformed entry or unparseable date."""

    source_index: int
    raw_date: str
    type: str
    reason: str
    employee_id: Optional[str] = None
