# fibersync/api/pppoe/main.py
"""PPPoE username/password patterns and a credential preview."""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.pppoe_service import PppoePatternService, PppoeService
from ..crud import register_crud_routes

router = APIRouter()


class PatternCreate(BaseModel):
    pattern_name: str
    pattern_type: str  # username | password
    sequence: List[dict]


class PatternUpdate(BaseModel):
    pattern_name: Optional[str] = None
    pattern_type: Optional[str] = None
    sequence: Optional[List[dict]] = None


class PreviewRequest(BaseModel):
    first_name: str = ""
    middle_initial: str = ""
    last_name: str = ""
    mobile_number: str = ""
    tech_input_username: Optional[str] = None
    custom_password: Optional[str] = None


@router.post("/pppoe/preview")
def api_preview_credentials(
    payload: PreviewRequest,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_staff),
):
    """Generates credentials without reserving them."""
    return {"success": True, "data": PppoeService(session).generate_credentials(payload.model_dump())}


register_crud_routes(router, "/pppoe/patterns", PppoePatternService, PatternCreate, PatternUpdate,
                     require_staff, require_admin, "pppoe_pattern")
