from __future__ import annotations

from fastapi import APIRouter, Query

from siteservices.core.config import get_settings
from siteservices.dependencies.auth import AdminUser
from siteservices.dependencies.services import AuditRepositoryDep
from siteservices.schemas import AuditEntryModel, CamelModel

router = APIRouter(prefix="/api/audit", tags=["audit"])


class AuditListEnvelope(CamelModel):
    entries: list[AuditEntryModel]


@router.get("", response_model=AuditListEnvelope, summary="Most recent audit entries")
async def list_audit(
    _: AdminUser,
    repository: AuditRepositoryDep,
    limit: int | None = Query(None, ge=1),
) -> AuditListEnvelope:
    settings = get_settings()
    bounded = min(limit or settings.audit_default_limit, settings.audit_max_limit)
    entries = await repository.list_entries(limit=bounded)
    return AuditListEnvelope(entries=[AuditEntryModel.model_validate(item) for item in entries])
