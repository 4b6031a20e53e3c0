"""
Moderation endpoints - human review of pending reports.

SCOPE:
✅ List the pending queue
✅ Approve (triggers nearby fan-out) or reject a pending report

❌ NOT edit report content
❌ NOT re-review an approved/rejected report
❌ NOT delete reports
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from safealert.core.container import ServiceContainer, get_container


router = APIRouter(prefix="/moderation", tags=["Moderation"])


class ModerationRequest(BaseModel):
    moderator_id: Optional[str] = Field(None, description="Authenticated moderator UID")


@router.get("/pending")
async def list_pending(
    moderator_id: Optional[str] = Query(None, description="Authenticated moderator UID"),
    container: ServiceContainer = Depends(get_container)
):
    reports = await container.moderation.list_pending(moderator_id)
    return {
        "reports": reports,
        "processing": [r.id for r in reports if container.moderation.is_processing(r.id)],
    }


@router.post("/{report_id}/approve")
async def approve_report(
    report_id: str,
    payload: ModerationRequest,
    container: ServiceContainer = Depends(get_container)
):
    report = await container.moderation.approve(report_id, payload.moderator_id)
    return {"processed": report is not None, "report": report}


@router.post("/{report_id}/reject")
async def reject_report(
    report_id: str,
    payload: ModerationRequest,
    container: ServiceContainer = Depends(get_container)
):
    report = await container.moderation.reject(report_id, payload.moderator_id)
    return {"processed": report is not None, "report": report}
