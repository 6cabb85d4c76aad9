# fibersync/api/customers/main.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_billing
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.customer_service import CustomerService
from .models import Customer, CustomerCreate, CustomerUpdate

router = APIRouter()


def get_customer_service(session: Session = Depends(get_sync_session)) -> CustomerService:
    return CustomerService(session)


@router.get("/customers")
def api_get_customers(
    search: Optional[str] = None,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_billing),
):
    customers = service.get_all_customers(search)
    return {"success": True, "data": customers, "count": len(customers)}


@router.get("/customers/{customer_id}")
def api_get_customer(
    customer_id: int,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_billing),
):
    try:
        return {"success": True, "data": Customer.model_validate(service.get_customer(customer_id))}
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/customers", status_code=status.HTTP_201_CREATED)
def api_create_customer(
    customer: CustomerCreate,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_billing),
):
    try:
        new_customer = service.create_customer(customer.model_dump(), user_id=current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Customer created successfully", "data": Customer.model_validate(new_customer)}


@router.put("/customers/{customer_id}")
def api_update_customer(
    customer_id: int,
    customer_update: CustomerUpdate,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_billing),
):
    try:
        updated = service.update_customer(customer_id, customer_update.model_dump(exclude_unset=True), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": "Customer updated successfully", "data": Customer.model_validate(updated)}


@router.delete("/customers/{customer_id}")
def api_delete_customer(
    customer_id: int,
    request: Request,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_billing),
):
    try:
        service.delete_customer(customer_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    log_action("DELETE", "customer", str(customer_id), user=current_user, request=request)
    return {"success": True, "message": "Customer deleted successfully"}
