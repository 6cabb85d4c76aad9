# fibersync/api/radius/main.py
"""
RADIUS endpoint configuration, manual subscriber operations and the
synced online status of subscribers.
Operation routes answer 200 with the operation's own status/message/output.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_admin, require_technician
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.radius_service import RadiusConfigService, RadiusOperationError, RadiusOperationsService
from ...services.radius_sync_service import RadiusStatusSyncService
from .models import (
    DisconnectRequest,
    OnlineStatusRead,
    RadiusConfigCreate,
    RadiusConfigRead,
    RadiusConfigUpdate,
    ReconnectRequest,
    UpdateCredentialsRequest,
)

router = APIRouter()


def get_radius_config_service(session: Session = Depends(get_sync_session)) -> RadiusConfigService:
    return RadiusConfigService(session)


def get_radius_operations(session: Session = Depends(get_sync_session)) -> RadiusOperationsService:
    return RadiusOperationsService(session)


# --- Endpoint configuration (admin) ---


@router.get("/radius/config", response_model=List[RadiusConfigRead])
def api_list_radius_config(
    service: RadiusConfigService = Depends(get_radius_config_service),
    current_user: User = Depends(require_admin),
):
    return service.get_all()


@router.post("/radius/config", response_model=RadiusConfigRead, status_code=status.HTTP_201_CREATED)
def api_create_radius_config(
    payload: RadiusConfigCreate,
    request: Request,
    service: RadiusConfigService = Depends(get_radius_config_service),
    current_user: User = Depends(require_admin),
):
    try:
        config = service.create(payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    log_action("CREATE", "radius_config", str(config.id), user=current_user, request=request,
               details={"ip": config.ip, "port": config.port})
    return config


@router.put("/radius/config/{config_id}", response_model=RadiusConfigRead)
def api_update_radius_config(
    config_id: int,
    payload: RadiusConfigUpdate,
    request: Request,
    service: RadiusConfigService = Depends(get_radius_config_service),
    current_user: User = Depends(require_admin),
):
    try:
        config = service.update(config_id, payload.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    log_action("UPDATE", "radius_config", str(config_id), user=current_user, request=request)
    return config


@router.delete("/radius/config/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_radius_config(
    config_id: int,
    request: Request,
    service: RadiusConfigService = Depends(get_radius_config_service),
    current_user: User = Depends(require_admin),
):
    service.delete(config_id)
    log_action("DELETE", "radius_config", str(config_id), user=current_user, request=request)


# --- Manual operations (technician) ---


def _audit(action: str, account_no: str, username: str, result: dict, user: User, request: Request):
    log_action(
        action,
        "radius_user",
        account_no or username,
        user=user,
        request=request,
        details={"username": username, "message": result["message"]},
        status="success" if result["status"] == "success" else "failure",
    )


@router.post("/radius/disconnect")
def api_radius_disconnect(
    payload: DisconnectRequest,
    request: Request,
    operations: RadiusOperationsService = Depends(get_radius_operations),
    current_user: User = Depends(require_technician),
):
    result = operations.disconnect_user(payload.username, payload.account_no, payload.remarks,
                                        updated_by=current_user.username)
    _audit("RADIUS_DISCONNECT", payload.account_no, payload.username, result, current_user, request)
    return result


@router.post("/radius/reconnect")
def api_radius_reconnect(
    payload: ReconnectRequest,
    request: Request,
    operations: RadiusOperationsService = Depends(get_radius_operations),
    current_user: User = Depends(require_technician),
):
    result = operations.reconnect_user(payload.username, payload.plan, payload.account_no,
                                       updated_by=current_user.username)
    _audit("RADIUS_RECONNECT", payload.account_no, payload.username, result, current_user, request)
    return result


@router.post("/radius/update-credentials")
def api_radius_update_credentials(
    payload: UpdateCredentialsRequest,
    request: Request,
    operations: RadiusOperationsService = Depends(get_radius_operations),
    current_user: User = Depends(require_technician),
):
    result = operations.update_credentials(payload.username, payload.new_username, payload.new_password,
                                           payload.account_no, updated_by=current_user.username)
    _audit("RADIUS_UPDATE_CREDENTIALS", payload.account_no, payload.username, result, current_user, request)
    return result


# --- Online status ---


@router.get("/radius/online-status", response_model=List[OnlineStatusRead])
def api_online_status(
    status: Optional[str] = None,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_technician),
):
    return RadiusStatusSyncService(session).list_status(status)


@router.post("/radius/sync")
def api_radius_sync(
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_technician),
):
    try:
        stats = RadiusStatusSyncService(session).sync()
    except RadiusOperationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "data": stats}
