# fibersync/api/inventory/main.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.users import require_staff, require_technician
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.inventory_service import InventoryCategoryService, InventoryService
from ..crud import register_crud_routes
from .models import CategoryCreate, CategoryUpdate, ItemCreate, ItemUpdate, MovementCreate

router = APIRouter()


def get_inventory_service(session: Session = Depends(get_sync_session)) -> InventoryService:
    return InventoryService(session)


register_crud_routes(router, "/inventory/categories", InventoryCategoryService, CategoryCreate, CategoryUpdate,
                     require_staff, require_technician, "inventory_category")


# Static paths are declared before the generic /inventory/{item_id} routes.
@router.get("/inventory/low-stock")
def api_get_low_stock(
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_staff),
):
    items = service.get_low_stock()
    return {"success": True, "data": items, "count": len(items)}


@router.get("/inventory")
def api_get_items(
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_staff),
):
    items = service.get_items_with_stock()
    return {"success": True, "data": items, "count": len(items)}


@router.get("/inventory/{item_id}/movements")
def api_get_movements(
    item_id: int,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_staff),
):
    movements = service.get_movements(item_id)
    return {"success": True, "data": movements, "on_hand": service.get_on_hand(item_id)}


@router.post("/inventory/{item_id}/movements", status_code=status.HTTP_201_CREATED)
def api_record_movement(
    item_id: int,
    payload: MovementCreate,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_technician),
):
    data = payload.model_dump(exclude_none=True)
    data.setdefault("requested_by", current_user.username)
    try:
        movement = service.record_movement(item_id, data)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Stock movement recorded", "data": movement,
            "on_hand": service.get_on_hand(item_id)}


register_crud_routes(router, "/inventory", InventoryService, ItemCreate, ItemUpdate,
                     require_staff, require_technician, "inventory_item", include_list=False)
