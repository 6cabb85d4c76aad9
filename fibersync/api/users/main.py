# fibersync/api/users/main.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_admin
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...schemas.user import UserCreate, UserRead, UserUpdate
from ...services.user_service import UserService

router = APIRouter()


def get_user_service(session: Session = Depends(get_sync_session)) -> UserService:
    return UserService(session)


@router.get("/users", response_model=List[UserRead])
def api_get_all_users(
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    return service.get_all_users()


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def api_create_user(
    user_data: UserCreate,
    request: Request,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    try:
        user = service.create_user(user_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    log_action("CREATE", "user", user.username, user=current_user, request=request, details={"role": user.role})
    return user


@router.put("/users/{username}", response_model=UserRead)
def api_update_user(
    username: str,
    user_data: UserUpdate,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.update_user(username, user_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")


@router.delete("/users/{username}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_user(
    username: str,
    request: Request,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    if username == current_user.username:
        raise HTTPException(status_code=403, detail="You cannot delete your own account.")
    try:
        service.delete_user(username)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    log_action("DELETE", "user", username, user=current_user, request=request)
