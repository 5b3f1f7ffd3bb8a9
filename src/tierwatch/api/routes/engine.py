"""Engine endpoints: stateless replays over a posted violation history."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from tierwatch.core.config import EngineConfig
from tierwatch.core.types import JsonDict
from tierwatch.engine import compute_state, preview_penalty
from tierwatch.models.health import HealthReport, RequiredDA
from tierwatch.models.state import EngineResult
from tierwatch.models.violation import Violation
from tierwatch.services.disciplinary import required_disciplinary_actions
from tierwatch.services.health_check import build_health_report

router = APIRouter(tags=["engine"])


class ReplayRequest(BaseModel):
    """Common body: raw violations plus per-request engine option overrides."""

    violations: list[JsonDict] = Field(default_factory=list)
    overrides: JsonDict = Field(default_factory=dict)


class StateRequest(ReplayRequest):
    as_of: Optional[str] = None


class PenaltyPreviewRequest(ReplayRequest):
    violation: Violation


class PenaltyPreviewResponse(BaseModel):
    points: int


class HealthReportRequest(ReplayRequest):
    employee_id: str = ""
    reference_date: Optional[str] = None


class RequiredDARequest(ReplayRequest):
    employee_id: str
    employee_name: str = ""
    issued_keys: list[str] = Field(default_factory=list)
    today: Optional[str] = None


def _engine_config(request: Request, overrides: JsonDict) -> EngineConfig:
    return request.app.state.settings.engine.with_overrides(overrides)


@router.post("/state", response_model=EngineResult)
async def state(body: StateRequest, request: Request) -> EngineResult:
    """Replay the posted history and project it to ``as_of``."""
    return compute_state(body.violations, _engine_config(request, body.overrides), body.as_of)


@router.post("/penalty-preview", response_model=PenaltyPreviewResponse)
async def penalty_preview(body: PenaltyPreviewRequest, request: Request) -> PenaltyPreviewResponse:
    points = preview_penalty(body.violation, body.violations, _engine_config(request, body.overrides))
    return PenaltyPreviewResponse(points=points)


@router.post("/health-report", response_model=HealthReport)
async def health_report(body: HealthReportRequest, request: Request) -> HealthReport:
    return build_health_report(
        body.violations,
        _engine_config(request, body.overrides),
        reference_date=body.reference_date,
        employee_id=body.employee_id,
    )


@router.post("/required-das", response_model=list[RequiredDA])
async def required_das(body: RequiredDARequest, request: Request) -> list[RequiredDA]:
    return required_disciplinary_actions(
        body.employee_id,
        body.violations,
        body.issued_keys,
        _engine_config(request, body.overrides),
        today=body.today,
        employee_name=body.employee_name,
    )
