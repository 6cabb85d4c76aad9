# fibersync/api/settings/models.py
from typing import Any, Dict, List

from pydantic import BaseModel


class AuditLogPage(BaseModel):
    items: List[Dict[str, Any]]
    total: int
    page: int
    page_size: int
    total_pages: int
