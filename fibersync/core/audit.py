# fibersync/core/audit.py
"""
Centralized audit logging.
Deletes, manual RADIUS actions, SMS blasts and money-moving operations are
written as JSON lines to logs/audit.log for later review.
"""
import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request

from fibersync.models.user import User

LOG_DIR = os.getenv("LOG_DIR", "logs")
AUDIT_LOG_FILE = os.path.join(LOG_DIR, "audit.log")

audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)
audit_logger.propagate = False

if not audit_logger.handlers:
    os.makedirs(LOG_DIR, exist_ok=True)
    file_handler = logging.FileHandler(AUDIT_LOG_FILE, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(file_handler)

logger = logging.getLogger(__name__)


def _client_ip(request: Optional[Request]) -> str:
    if not request:
        return "unknown"
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def log_action(
    action: str,
    resource_type: str,
    resource_id: str,
    user: Optional[User] = None,
    request: Optional[Request] = None,
    details: Optional[dict] = None,
    status: str = "success",
) -> None:
    """
    Log a security-relevant action to the audit log.

    Args:
        action: The action performed (e.g., "DELETE", "RECONNECT", "SMS_BLAST")
        resource_type: Type of resource affected (e.g., "service_order", "billing_account")
        resource_id: Identifier of the affected resource
        user: The User who performed the action (optional)
        request: FastAPI Request used to extract the client IP (optional)
        details: Additional context (optional)
        status: "success" or "failure"
    """
    client_ip = _client_ip(request)

    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action.upper(),
        "resource_type": resource_type,
        "resource_id": str(resource_id),
        "user": user.username if user else "anonymous",
        "user_role": user.role if user else "unknown",
        "ip_address": client_ip,
        "status": status,
    }
    if details:
        log_entry["details"] = details

    audit_logger.info(json.dumps(log_entry, ensure_ascii=False, default=str))
    logger.debug(
        "AUDIT %s %s/%s by %s from %s",
        action.upper(), resource_type, resource_id, log_entry["user"], client_ip,
    )
