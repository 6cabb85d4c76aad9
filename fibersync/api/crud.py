# fibersync/api/crud.py
"""
Route factory for the single-table resources served by BaseCRUDService
subclasses (NAPs, ports, VLANs, categories, templates...).
"""
from typing import Callable, Type

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlmodel import Session

from ..core.audit import log_action
from ..db.engine_sync import get_sync_session
from ..models.user import User
from ..services.base_service import BaseCRUDService


def register_crud_routes(
    router: APIRouter,
    path: str,
    service_class: Type[BaseCRUDService],
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
    read_dependency: Callable,
    write_dependency: Callable,
    resource_type: str,
    include_list: bool = True,
) -> None:
    """Adds list / get / create / update / delete routes for `path` to `router`."""

    def get_service(session: Session = Depends(get_sync_session)) -> BaseCRUDService:
        return service_class(session)

    if include_list:
        @router.get(path, name=f"list_{resource_type}")
        def api_list(
            service: BaseCRUDService = Depends(get_service),
            current_user: User = Depends(read_dependency),
        ):
            items = service.get_all()
            return {"success": True, "data": items, "count": len(items)}

    @router.get(f"{path}/{{item_id}}", name=f"get_{resource_type}")
    def api_get(
        item_id: int,
        service: BaseCRUDService = Depends(get_service),
        current_user: User = Depends(read_dependency),
    ):
        return {"success": True, "data": service.get_by_id(item_id)}

    @router.post(path, status_code=status.HTTP_201_CREATED, name=f"create_{resource_type}")
    def api_create(
        payload: create_model,
        service: BaseCRUDService = Depends(get_service),
        current_user: User = Depends(write_dependency),
    ):
        try:
            item = service.create(payload.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return {"success": True, "message": f"{service.label} created successfully", "data": item}

    @router.put(f"{path}/{{item_id}}", name=f"update_{resource_type}")
    def api_update(
        item_id: int,
        payload: update_model,
        service: BaseCRUDService = Depends(get_service),
        current_user: User = Depends(write_dependency),
    ):
        try:
            item = service.update(item_id, payload.model_dump(exclude_unset=True))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return {"success": True, "message": f"{service.label} updated successfully", "data": item}

    @router.delete(f"{path}/{{item_id}}", name=f"delete_{resource_type}")
    def api_delete(
        item_id: int,
        request: Request,
        service: BaseCRUDService = Depends(get_service),
        current_user: User = Depends(write_dependency),
    ):
        service.delete(item_id)
        log_action("DELETE", resource_type, str(item_id), user=current_user, request=request)
        return {"success": True, "message": f"{service.label} deleted successfully"}
