"""
Device session endpoint: sign-in, location and push token updates from the
UI shell.
"""

from fastapi import APIRouter, Depends

from safealert.core.container import ServiceContainer, get_container
from safealert.models.user import DeviceUpdate


router = APIRouter(prefix="/device", tags=["Device"])


@router.get("")
async def get_device(container: ServiceContainer = Depends(get_container)):
    device = container.device
    return {
        "user_id": device.user_id,
        "location": device.location._asdict() if device.location else None,
        "has_push_token": bool(device.push_token),
    }


@router.put("")
async def update_device(payload: DeviceUpdate, container: ServiceContainer = Depends(get_container)):
    """
    Update who is signed in and where the device is. A location together with
    a known user and push token is also stored for approval fan-out.
    """
    if payload.user_id:
        await container.reports.sign_in(payload.user_id)
    if payload.push_token:
        container.device.push_token = payload.push_token

    if payload.latitude is not None and payload.longitude is not None:
        await container.reports.update_location_and_token(
            payload.latitude, payload.longitude, payload.push_token
        )

    return await get_device(container)
