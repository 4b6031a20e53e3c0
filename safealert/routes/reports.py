"""
Report endpoints - submission and read-side views.

Only approved reports are public. A user's own reports are visible in every
status.
"""

from typing import List
from fastapi import APIRouter, Depends, status

from safealert.core.container import ServiceContainer, get_container
from safealert.models.report import Report, ReportCategory, ReportCreate


router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("", response_model=Report, status_code=status.HTTP_201_CREATED)
async def submit_report(payload: ReportCreate, container: ServiceContainer = Depends(get_container)):
    """
    Submit a report at the device's current location.
    The report stays pending until a moderator reviews it.
    """
    return await container.reports.submit_report(
        category=payload.category,
        description=payload.description,
        image_url=payload.image_url,
    )


@router.get("/approved", response_model=List[Report])
async def list_approved(container: ServiceContainer = Depends(get_container)):
    return await container.reports.get_approved_reports()


@router.get("/category/{category}", response_model=List[Report])
async def list_by_category(category: ReportCategory, container: ServiceContainer = Depends(get_container)):
    return await container.reports.get_approved_reports_by_category(category)


@router.get("/user/{user_id}")
async def list_user_reports(user_id: str, container: ServiceContainer = Depends(get_container)):
    grouped = await container.reports.get_user_reports(user_id)
    return {
        "reports": grouped.all,
        "counts": grouped.counts(),
    }
