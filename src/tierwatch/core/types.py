"""Type aliases used across TierWatch."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Union

JsonDict = dict[str, Any]
DateLike = Union[datetime, date, str]
EmployeeId = str
QuarterKey = str  # "2025-Q3"
PeriodKey = str  # "2025-07" or "2025-Q3"
EscalationCounts = dict[str, int]
PenaltyTable = list[int]
