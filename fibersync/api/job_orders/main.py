# fibersync/api/job_orders/main.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_billing, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.job_order_service import JobOrderService
from .models import JobOrderCreate, JobOrderUpdate

router = APIRouter()


def get_job_order_service(session: Session = Depends(get_sync_session)) -> JobOrderService:
    return JobOrderService(session)


@router.get("/job-orders")
def api_get_job_orders(
    billing_status: Optional[str] = None,
    service: JobOrderService = Depends(get_job_order_service),
    current_user: User = Depends(require_staff),
):
    job_orders = service.list_job_orders(billing_status)
    return {"success": True, "data": job_orders, "count": len(job_orders)}


@router.get("/job-orders/{job_order_id}")
def api_get_job_order(
    job_order_id: int,
    service: JobOrderService = Depends(get_job_order_service),
    current_user: User = Depends(require_staff),
):
    try:
        return {"success": True, "data": service.get_job_order(job_order_id)}
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/job-orders", status_code=status.HTTP_201_CREATED)
def api_create_job_order(
    job_order: JobOrderCreate,
    service: JobOrderService = Depends(get_job_order_service),
    current_user: User = Depends(require_staff),
):
    try:
        created = service.create_job_order(job_order.model_dump(exclude_none=True), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Job order created successfully", "data": created}


@router.put("/job-orders/{job_order_id}")
def api_update_job_order(
    job_order_id: int,
    update: JobOrderUpdate,
    service: JobOrderService = Depends(get_job_order_service),
    current_user: User = Depends(require_staff),
):
    try:
        updated = service.update_job_order(job_order_id, update.model_dump(exclude_unset=True), current_user.id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": "Job order updated successfully", "data": updated}


@router.post("/job-orders/{job_order_id}/approve")
def api_approve_job_order(
    job_order_id: int,
    request: Request,
    service: JobOrderService = Depends(get_job_order_service),
    current_user: User = Depends(require_billing),
):
    try:
        result = service.approve_job_order(job_order_id, current_user.id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to approve job order: {e}")

    log_action("APPROVE", "job_order", str(job_order_id), user=current_user, request=request,
               details={"account_no": result["account_no"]})
    return {"success": True, "message": "Job order approved successfully", "data": result}


@router.delete("/job-orders/{job_order_id}")
def api_delete_job_order(
    job_order_id: int,
    request: Request,
    service: JobOrderService = Depends(get_job_order_service),
    current_user: User = Depends(require_billing),
):
    try:
        service.delete_job_order(job_order_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    log_action("DELETE", "job_order", str(job_order_id), user=current_user, request=request)
    return {"success": True, "message": "Job order deleted successfully"}
