# fibersync/api/network/main.py
"""
Passive network topology: LCPs (paginated), NAPs, ports, VLANs and
LCP/NAP locations.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ...core.users import require_staff, require_technician
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.network_service import (
    LcpNapLocationService,
    LcpService,
    NapService,
    PortService,
    VlanService,
)
from ..crud import register_crud_routes
from .models import (
    LcpCreate,
    LcpNapLocationCreate,
    LcpNapLocationUpdate,
    LcpUpdate,
    NapCreate,
    NapUpdate,
    PortCreate,
    PortUpdate,
    VlanCreate,
    VlanUpdate,
)

router = APIRouter()


def get_lcp_service(session: Session = Depends(get_sync_session)) -> LcpService:
    return LcpService(session)


@router.get("/lcp")
def api_get_lcps(
    page: int = 1,
    per_page: int = 10,
    search: Optional[str] = None,
    service: LcpService = Depends(get_lcp_service),
    current_user: User = Depends(require_staff),
):
    return {"success": True, **service.paginate(page, per_page, search)}


register_crud_routes(router, "/lcp", LcpService, LcpCreate, LcpUpdate,
                     require_staff, require_technician, "lcp", include_list=False)
register_crud_routes(router, "/nap", NapService, NapCreate, NapUpdate,
                     require_staff, require_technician, "nap")
register_crud_routes(router, "/ports", PortService, PortCreate, PortUpdate,
                     require_staff, require_technician, "port")
register_crud_routes(router, "/vlans", VlanService, VlanCreate, VlanUpdate,
                     require_staff, require_technician, "vlan")
register_crud_routes(router, "/lcpnap", LcpNapLocationService, LcpNapLocationCreate, LcpNapLocationUpdate,
                     require_staff, require_technician, "lcpnap")
