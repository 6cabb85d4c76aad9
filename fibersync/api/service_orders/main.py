# fibersync/api/service_orders/main.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ...core.audit import log_action
from ...core.constants import REPAIR_CATEGORIES
from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.service_order_service import ServiceOrderService
from .models import ServiceOrderCreate, ServiceOrderUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service_order_service(session: Session = Depends(get_sync_session)) -> ServiceOrderService:
    return ServiceOrderService(session)


@router.get("/service-orders")
def api_get_service_orders(
    assigned_email: Optional[str] = None,
    account_no: Optional[str] = None,
    support_status: Optional[str] = None,
    service: ServiceOrderService = Depends(get_service_order_service),
    current_user: User = Depends(require_staff),
):
    orders = service.list_service_orders(assigned_email, account_no, support_status)
    return {"success": True, "data": orders, "count": len(orders)}


@router.get("/service-orders/repair-categories")
def api_get_repair_categories(current_user: User = Depends(require_staff)):
    return {"success": True, "data": REPAIR_CATEGORIES}


@router.get("/service-orders/{order_id}")
def api_get_service_order(
    order_id: int,
    service: ServiceOrderService = Depends(get_service_order_service),
    current_user: User = Depends(require_staff),
):
    try:
        return {"success": True, "data": service.get_service_order(order_id)}
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/service-orders", status_code=status.HTTP_201_CREATED)
def api_create_service_order(
    order: ServiceOrderCreate,
    service: ServiceOrderService = Depends(get_service_order_service),
    current_user: User = Depends(require_staff),
):
    try:
        created = service.create_service_order(order.model_dump(exclude_none=True), user_id=current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Service order created successfully", "data": created}


@router.put("/service-orders/{order_id}")
def api_update_service_order(
    order_id: int,
    update: ServiceOrderUpdate,
    request: Request,
    service: ServiceOrderService = Depends(get_service_order_service),
    current_user: User = Depends(require_staff),
):
    try:
        result = service.update_service_order(
            order_id, update.model_dump(exclude_unset=True), user_id=current_user.id, updated_by=current_user.username
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Updating service order {order_id} failed")
        raise HTTPException(status_code=500, detail=f"Failed to update service order: {e}")

    operation = result["network_operation"]
    if operation:
        log_action(
            operation["action"].upper(),
            "service_order",
            str(order_id),
            user=current_user,
            request=request,
            details={"account_no": result["order"].account_no, "result": operation["result"]},
            status="success" if operation["result"] == "success" else "failure",
        )
    return {
        "success": True,
        "message": "Service order updated successfully",
        "data": result["order"],
        "network_operation": operation,
    }


@router.delete("/service-orders/{order_id}")
def api_delete_service_order(
    order_id: int,
    request: Request,
    service: ServiceOrderService = Depends(get_service_order_service),
    current_user: User = Depends(require_admin),
):
    try:
        service.delete_service_order(order_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    log_action("DELETE", "service_order", str(order_id), user=current_user, request=request)
    return {"success": True, "message": "Service order deleted successfully"}
