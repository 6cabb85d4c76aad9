# fibersync/api/locations/main.py
"""Region / city / barangay / village maintenance."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.location_service import LocationInUseError, LocationService

router = APIRouter()


class LocationCreate(BaseModel):
    name: str
    parent_id: Optional[int] = None


class LocationRename(BaseModel):
    name: str


def get_location_service(session: Session = Depends(get_sync_session)) -> LocationService:
    return LocationService(session)


@router.get("/locations/{location_type}")
def api_list_locations(
    location_type: str,
    parent_id: Optional[int] = None,
    service: LocationService = Depends(get_location_service),
    current_user: User = Depends(require_staff),
):
    try:
        items = service.list_locations(location_type, parent_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "data": items, "count": len(items)}


@router.post("/locations/{location_type}", status_code=status.HTTP_201_CREATED)
def api_add_location(
    location_type: str,
    payload: LocationCreate,
    service: LocationService = Depends(get_location_service),
    current_user: User = Depends(require_admin),
):
    try:
        item = service.add_location(location_type, payload.name, payload.parent_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": f"{location_type.capitalize()} added successfully", "data": item}


@router.put("/locations/{location_type}/{location_id}")
def api_rename_location(
    location_type: str,
    location_id: int,
    payload: LocationRename,
    service: LocationService = Depends(get_location_service),
    current_user: User = Depends(require_admin),
):
    try:
        item = service.rename_location(location_type, location_id, payload.name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": f"{location_type.capitalize()} updated successfully", "data": item}


@router.delete("/locations/{location_type}/{location_id}")
def api_delete_location(
    location_type: str,
    location_id: int,
    request: Request,
    cascade: bool = False,
    service: LocationService = Depends(get_location_service),
    current_user: User = Depends(require_admin),
):
    try:
        service.delete_location(location_type, location_id, cascade=cascade)
    except LocationInUseError as e:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"success": False, "message": str(e), "data": e.data},
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    log_action("DELETE", location_type, str(location_id), user=current_user, request=request,
               details={"cascade": cascade})
    return {"success": True, "message": f"{location_type.capitalize()} deleted successfully"}
