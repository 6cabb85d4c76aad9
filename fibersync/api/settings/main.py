# fibersync/api/settings/main.py
import json
import os
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from ...core.audit import AUDIT_LOG_FILE
from ...core.users import require_admin
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.settings_service import SettingsService
from .models import AuditLogPage

router = APIRouter()


def get_settings_service(session: Session = Depends(get_sync_session)) -> SettingsService:
    return SettingsService(session)


@router.get("/settings", response_model=dict[str, str])
def api_get_settings(
    service: SettingsService = Depends(get_settings_service),
    current_user: User = Depends(require_admin),
):
    return service.get_all_settings()


@router.put("/settings", status_code=status.HTTP_204_NO_CONTENT)
def api_update_settings(
    settings: dict[str, str],
    service: SettingsService = Depends(get_settings_service),
    current_user: User = Depends(require_admin),
):
    service.update_settings(settings)


# --- Audit log (admin only) ---


def _read_audit_entries(path: str = AUDIT_LOG_FILE) -> List[dict]:
    if not os.path.exists(path):
        return []
    entries = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    entries.reverse()
    return entries


@router.get("/settings/audit-logs", response_model=AuditLogPage)
def get_audit_logs(
    page: int = 1,
    page_size: int = 20,
    action: Optional[str] = None,
    username: Optional[str] = None,
    current_user: User = Depends(require_admin),
):
    """Newest first. Supports filtering by action type and username."""
    entries = _read_audit_entries()
    if action:
        entries = [e for e in entries if e.get("action") == action.upper()]
    if username:
        entries = [e for e in entries if e.get("user") == username]

    page = max(page, 1)
    total = len(entries)
    start = (page - 1) * page_size
    return {
        "items": entries[start:start + page_size],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size if total > 0 else 1,
    }


@router.get("/settings/audit-logs/filters")
def get_audit_log_filters(current_user: User = Depends(require_admin)):
    entries = _read_audit_entries()
    return {
        "actions": sorted({e["action"] for e in entries if e.get("action")}),
        "usernames": sorted({e["user"] for e in entries if e.get("user")}),
    }
