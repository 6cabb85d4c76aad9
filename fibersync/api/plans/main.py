# fibersync/api/plans/main.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.plan_service import PlanService

router = APIRouter()


# --- Pydantic request/response models ---
class PlanBase(BaseModel):
    plan_name: str
    description: Optional[str] = None
    price: float = 0.0


class PlanCreate(PlanBase):
    pass


class PlanUpdate(BaseModel):
    plan_name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None


class PlanResponse(PlanBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


def get_plan_service(session: Session = Depends(get_sync_session)) -> PlanService:
    return PlanService(session)


@router.get("/plans", response_model=List[PlanResponse])
def get_all_plans(
    service: PlanService = Depends(get_plan_service),
    current_user: User = Depends(require_staff),
):
    return service.get_all()


@router.get("/plans/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: int,
    service: PlanService = Depends(get_plan_service),
    current_user: User = Depends(require_staff),
):
    return service.get_by_id(plan_id)


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    plan: PlanCreate,
    service: PlanService = Depends(get_plan_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.create_plan(plan.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/plans/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: int,
    plan: PlanUpdate,
    service: PlanService = Depends(get_plan_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.update_plan(plan_id, plan.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(
    plan_id: int,
    request: Request,
    service: PlanService = Depends(get_plan_service),
    current_user: User = Depends(require_admin),
):
    service.delete(plan_id)
    log_action("DELETE", "plan", str(plan_id), user=current_user, request=request)
