# fibersync/api/logs/main.py
"""Read-only history of reconnections and disconnections."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ...core.users import require_staff
from ...db.engine_sync import get_sync_session
from ...models.radius import DisconnectionLog, ReconnectionLog
from ...models.user import User

router = APIRouter()


def _list_logs(session: Session, model, account_no: Optional[str], limit: int):
    statement = select(model)
    if account_no:
        statement = statement.where(model.account_no == account_no)
    return session.exec(statement.order_by(model.created_at.desc()).limit(limit)).all()


@router.get("/logs/reconnections")
def api_reconnection_logs(
    account_no: Optional[str] = None,
    limit: int = 100,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_staff),
):
    logs = _list_logs(session, ReconnectionLog, account_no, limit)
    return {"success": True, "data": logs, "count": len(logs)}


@router.get("/logs/disconnections")
def api_disconnection_logs(
    account_no: Optional[str] = None,
    limit: int = 100,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_staff),
):
    logs = _list_logs(session, DisconnectionLog, account_no, limit)
    return {"success": True, "data": logs, "count": len(logs)}
