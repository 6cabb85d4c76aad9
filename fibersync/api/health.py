# fibersync/api/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlmodel import Session

from ..core.config import get_settings
from ..db.engine_sync import get_sync_session

router = APIRouter()


@router.get("/health", tags=["System"])
def get_system_health(session: Session = Depends(get_sync_session)):
    """
    Returns the system health status:
    - database reachability
    - which outbound integrations are configured
    """
    try:
        session.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        database = f"error: {e}"

    settings = get_settings()
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "integrations": {
            "xendit": bool(settings.xendit_api_key),
            "xendit_webhook": bool(settings.xendit_callback_token),
            "resend": bool(settings.resend_api_key),
        },
    }
