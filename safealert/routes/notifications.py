"""
Notification endpoints - preferences, polling control and delivered alerts.
"""

from fastapi import APIRouter, Depends

from safealert.core.container import ServiceContainer, get_container
from safealert.models.notification import PollingCycleResult, PollingStatus, PreferencesSnapshot, PreferencesUpdate
from safealert.services.notification_sink import InMemoryNotificationSink


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/preferences", response_model=PreferencesSnapshot)
async def get_preferences(container: ServiceContainer = Depends(get_container)):
    return container.preferences.snapshot()


@router.put("/preferences", response_model=PreferencesSnapshot)
async def update_preferences(payload: PreferencesUpdate, container: ServiceContainer = Depends(get_container)):
    """Apply a partial update; the next polling cycle uses the new values."""
    preferences = container.preferences
    if payload.radius_m is not None:
        await preferences.set_radius(payload.radius_m)
    if payload.enabled_categories is not None:
        await preferences.set_enabled_categories(payload.enabled_categories)
    if payload.severity_threshold is not None:
        await preferences.set_severity_threshold(payload.severity_threshold)
    return preferences.snapshot()


@router.get("/polling/status", response_model=PollingStatus)
async def polling_status(container: ServiceContainer = Depends(get_container)):
    return container.polling.status()


@router.post("/polling/start", response_model=PollingStatus)
async def start_polling(container: ServiceContainer = Depends(get_container)):
    container.polling.start_polling()
    return container.polling.status()


@router.post("/polling/stop", response_model=PollingStatus)
async def stop_polling(container: ServiceContainer = Depends(get_container)):
    container.polling.stop_polling()
    return container.polling.status()


@router.post("/polling/run", response_model=PollingCycleResult)
async def run_polling_cycle(container: ServiceContainer = Depends(get_container)):
    """Run one cycle now (pull-to-refresh / app foreground)."""
    return await container.polling.execute_polling()


@router.delete("/seen")
async def clear_seen_reports(container: ServiceContainer = Depends(get_container)):
    await container.tracker.clear()
    return {"seen_count": container.tracker.count()}


@router.get("/delivered")
async def delivered_notifications(container: ServiceContainer = Depends(get_container)):
    sink = container.notification_sink
    if not isinstance(sink, InMemoryNotificationSink):
        return {"notifications": []}
    return {"notifications": list(sink.delivered.values())}
