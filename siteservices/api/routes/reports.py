from __future__ import annotations

from fastapi import APIRouter

from siteservices.dependencies.auth import AdminUser
from siteservices.dependencies.services import ReportingServiceDep
from siteservices.schemas import CamelModel

router = APIRouter(prefix="/api/reports", tags=["reports"])


class SummaryModel(CamelModel):
    total: int
    open: int
    assigned: int
    done: int
    avg_resolution_hours: float | None
    sla_ok: int
    sla_total: int
    overdue: int


class StaffScoreModel(CamelModel):
    id: int
    full_name: str
    email: str
    ratings_count: int
    avg_stars: float


class TopStaffEnvelope(CamelModel):
    staff: list[StaffScoreModel]


@router.get("/summary", response_model=SummaryModel)
async def summary(_: AdminUser, service: ReportingServiceDep) -> SummaryModel:
    return SummaryModel.model_validate(await service.summary())


@router.get("/top-staff", response_model=TopStaffEnvelope, summary="Best rated staff members")
async def top_staff(_: AdminUser, service: ReportingServiceDep) -> TopStaffEnvelope:
    scores = await service.top_staff()
    return TopStaffEnvelope(staff=[StaffScoreModel.model_validate(item) for item in scores])
