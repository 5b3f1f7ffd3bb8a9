"""DisciplinaryActionService: lists DAs owed per quarter and not yet issued."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from tierwatch.core.config import EngineConfig
from tierwatch.core.dates import quarter_bounds, quarter_key
from tierwatch.core.types import DateLike, EmployeeId, QuarterKey
from tierwatch.engine.normalizer import normalize_violations, parse_calendar_date
from tierwatch.engine.replay import ViolationInput, state_as_of
from tierwatch.models.health import RequiredDA
from tierwatch.models.tier import TierName
from tierwatch.models.violation import Violation

log = logging.getLogger(__name__)

ACTIONABLE_TIERS = frozenset(
    {TierName.COACHING, TierName.SEVERE, TierName.FINAL, TierName.TERMINATION}
)


def da_key(employee_id: EmployeeId, tier: TierName, quarter: Optional[QuarterKey] = None) -> str:
    """Issuance key: ``{employee}-{tier}-{quarter}``, or the legacy ``{employee}-{tier}``."""
    if quarter is None:
        return f"{employee_id}-{tier.value}"
    return f"{employee_id}-{tier.value}-{quarter}"


def _belongs_to(raw: ViolationInput, employee_id: EmployeeId) -> bool:
    owner = raw.employee_id if isinstance(raw, Violation) else (
        raw.get("employee_id") or raw.get("employeeId") or ""
    )
    return not owner or owner == employee_id


def required_disciplinary_actions(
    employee_id: EmployeeId,
    violations: Iterable[ViolationInput],
    issued_keys: Iterable[str] = (),
    config: Optional[EngineConfig] = None,
    today: Optional[DateLike] = None,
    employee_name: str = "",
) -> list[RequiredDA]:
    """DAs owed by ``employee_id`` that have not been issued yet.

    Every quarter holding one of the employee's violations is checked, along
    with the current quarter. The tier is read at the quarter's last day (or
    at ``today`` for the current quarter); Coaching and below require a DA
    unless its quarterly or legacy key is already in ``issued_keys``.
    """
    config = config or EngineConfig()
    reference = parse_calendar_date(today) if today is not None else config.target_date or date.today()
    history = [v for v in violations if _belongs_to(v, employee_id)]
    issued = set(issued_keys)

    normalized, _ = normalize_violations(history, reset_effective_date=config.reset_effective_date)
    quarters = {quarter_key(v.day) for v in normalized if v.day <= reference}
    quarters.add(quarter_key(reference))

    required: list[RequiredDA] = []
    for quarter in sorted(quarters):
        _, end = quarter_bounds(quarter)
        result = state_as_of(history, min(end, reference), config)
        tier = result.tier.name
        if tier not in ACTIONABLE_TIERS:
            continue
        key = da_key(employee_id, tier, quarter)
        if key in issued or da_key(employee_id, tier) in issued:
            continue
        required.append(
            RequiredDA(
                employee_id=employee_id,
                employee_name=employee_name,
                tier=tier,
                quarter=quarter,
                points=result.points,
                key=key,
            )
        )

    if required:
        log.info(
            "%d disciplinary action(s) outstanding for %s: %s",
            len(required), employee_id, ", ".join(r.key for r in required),
        )
    return required
