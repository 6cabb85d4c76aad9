# fibersync/services/radius_sync_service.py
"""
Mirrors the RADIUS user-manager session state into the online_status
table, one row per account with a PPPoE username.

    user in a Disconnected group, with a session    -> Blocked
    user in a Disconnected group, without a session -> Inactive
    user in any other group, with a session         -> Online
    user in any other group, without a session      -> Offline
    user missing from RADIUS                        -> Not Found
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..core.constants import RadiusGroup
from ..core.log_files import get_file_logger
from ..models.billing_account import BillingAccount, TechnicalDetail
from ..models.radius import OnlineStatus
from .radius_service import SESSION_PATH, USER_PATH, RadiusOperationError, RadiusOperationsService

logger = get_file_logger("fibersync.radius_sync", "radius_sync.log")

DISCONNECTED_GROUPS = (RadiusGroup.DISCONNECTED.value, f"Mikrotik-Group:{RadiusGroup.DISCONNECTED.value}")


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def session_status(group: Optional[str], has_session: bool) -> str:
    if group in DISCONNECTED_GROUPS:
        return "Blocked" if has_session else "Inactive"
    return "Online" if has_session else "Offline"


class RadiusStatusSyncService:
    def __init__(self, session: Session, operations: Optional[RadiusOperationsService] = None):
        self.session = session
        self.operations = operations or RadiusOperationsService(session)

    def _fetch(self, path: str, what: str) -> List[dict]:
        endpoints = self.operations.get_endpoints()
        if not endpoints:
            raise RadiusOperationError("No RADIUS configuration found")
        result = self.operations.client.call(endpoints[0], "GET", path)
        if not isinstance(result, list):
            raise RadiusOperationError(f"Could not fetch RADIUS {what}")
        return [item for item in result if isinstance(item, dict)]

    def fetch_users(self) -> Dict[str, dict]:
        return {user["name"]: user for user in self._fetch(USER_PATH, "users") if user.get("name")}

    def fetch_sessions(self) -> Dict[str, dict]:
        return {s["user"]: s for s in self._fetch(SESSION_PATH, "sessions") if s.get("user")}

    def sync(self) -> Dict[str, int]:
        """Refreshes every row. Raises RadiusOperationError when RADIUS cannot be read."""
        users = self.fetch_users()
        sessions = self.fetch_sessions()
        logger.info(f"Fetched {len(users)} RADIUS user(s) and {len(sessions)} session(s)")

        stats = {"synced": 0, "inserted": 0, "online": 0, "offline": 0, "blocked": 0,
                 "inactive": 0, "not_found": 0}
        accounts = self.session.exec(
            select(BillingAccount.id, BillingAccount.account_no, TechnicalDetail.username)
            .join(TechnicalDetail, TechnicalDetail.account_no == BillingAccount.account_no)
            .where(TechnicalDetail.username.is_not(None), TechnicalDetail.username != "")
        ).all()

        for account_id, account_no, username in accounts:
            username = username.strip()
            row = self.session.exec(select(OnlineStatus).where(OnlineStatus.account_no == account_no)).first()
            if row is None:
                row = OnlineStatus(account_no=account_no)
                stats["inserted"] += 1

            user = users.get(username)
            active = sessions.get(username) if user else None
            if user is None:
                status = "Not Found"
            else:
                status = session_status(user.get("group"), active is not None)

            row.account_id = account_id
            row.username = username
            row.session_status = status
            row.session_group = user.get("group") if user else None
            row.session_id = active.get(".id") if active else None
            row.ip_address = active.get("user-address") if active else None
            row.session_mac_address = active.get("calling-station-id") if active else None
            row.total_download = _to_int(active.get("download")) if active else None
            row.total_upload = _to_int(active.get("upload")) if active else None
            row.updated_at = datetime.utcnow()
            self.session.add(row)

            stats[status.lower().replace(" ", "_")] += 1
            stats["synced"] += 1

        self.session.commit()
        logger.info(f"RADIUS status sync finished: {stats}")
        return stats

    def list_status(self, status: Optional[str] = None) -> List[OnlineStatus]:
        statement = select(OnlineStatus)
        if status:
            statement = statement.where(OnlineStatus.session_status == status)
        return self.session.exec(statement.order_by(OnlineStatus.account_no)).all()
