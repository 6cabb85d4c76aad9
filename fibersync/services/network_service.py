# fibersync/services/network_service.py
"""
CRUD services for the passive network topology (LCP, NAP, ports, VLANs,
LCP/NAP locations).
"""
import math
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ..models.network import Lcp, LcpNapLocation, Nap, Port, Vlan
from .base_service import BaseCRUDService


class LcpService(BaseCRUDService[Lcp]):
    unique_fields = ("lcp_name",)
    order_by = "lcp_name"

    def __init__(self, session: Session):
        super().__init__(session, Lcp)

    def paginate(self, page: int = 1, per_page: int = 10, search: Optional[str] = None) -> Dict[str, Any]:
        """Returns one page of LCPs plus the pagination block the frontend expects."""
        page = max(page, 1)
        per_page = max(per_page, 1)

        statement = select(Lcp)
        count_statement = select(func.count()).select_from(Lcp)
        if search:
            statement = statement.where(Lcp.lcp_name.contains(search))
            count_statement = count_statement.where(Lcp.lcp_name.contains(search))

        total_items = self.session.exec(count_statement).one()
        items = self.session.exec(
            statement.order_by(Lcp.lcp_name).offset((page - 1) * per_page).limit(per_page)
        ).all()
        total_pages = math.ceil(total_items / per_page) if total_items else 0

        return {
            "data": items,
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_items": total_items,
                "items_per_page": per_page,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }


class NapService(BaseCRUDService[Nap]):
    unique_fields = ("nap_name",)
    order_by = "nap_name"

    def __init__(self, session: Session):
        super().__init__(session, Nap)


class PortService(BaseCRUDService[Port]):
    unique_fields = ("port_id",)
    order_by = "label"

    def __init__(self, session: Session):
        super().__init__(session, Port)


class VlanService(BaseCRUDService[Vlan]):
    unique_fields = ("vlan_id",)
    order_by = "value"

    def __init__(self, session: Session):
        super().__init__(session, Vlan)


class LcpNapLocationService(BaseCRUDService[LcpNapLocation]):
    unique_fields = ("lcpnap_name",)
    order_by = "lcpnap_name"

    def __init__(self, session: Session):
        super().__init__(session, LcpNapLocation)

    def create(self, data: Dict[str, Any]) -> LcpNapLocation:
        # "LCP-01 to NAP-03" style name when none is given
        if not data.get("lcpnap_name") and data.get("lcp") and data.get("nap"):
            data = {**data, "lcpnap_name": f"{data['lcp']} to {data['nap']}"}
        if not data.get("lcpnap_name"):
            raise ValueError("lcpnap_name, or both lcp and nap, are required.")
        return super().create(data)
