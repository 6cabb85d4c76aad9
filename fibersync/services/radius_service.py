# fibersync/services/radius_service.py
"""
PPPoE subscriber control through the RADIUS user-manager REST API.

- RadiusClient: HTTP calls with retry against one configured endpoint.
- RadiusOperationsService: disconnect / reconnect / credential changes,
  applied to every configured endpoint, plus the DB status update.
- RadiusReconnectionService: automatic reconnect of an account whose
  balance has been paid off.
"""
import time
from contextlib import nullcontext
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import BillingStatus, RadiusGroup, ReconnectResult
from ..core.log_files import get_file_logger
from ..models.billing_account import BillingAccount, TechnicalDetail
from ..models.plan import Plan
from ..models.radius import RadiusConfig, ReconnectionLog
from ..utils.security import decrypt_data, encrypt_data
from .base_service import BaseCRUDService

logger = get_file_logger("fibersync.radius", "radius_operations.log")

USER_PATH = "/rest/user-manage/user"
SESSION_PATH = "/rest/user-manage/session"


class RadiusOperationError(Exception):
    """An operation could not be completed; the message is shown to the operator."""


class RadiusClient:
    """
    Thin HTTP client for the RADIUS REST API. Every call is retried up to
    `retries` times on transport errors and 5xx answers; 4xx answers fail
    immediately. A failed call returns False instead of raising.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        retries: int = 3,
        retry_delay: float = 1.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.retries = max(retries, 1)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.http_client = http_client

    def _open(self):
        if self.http_client is not None:
            return nullcontext(self.http_client)
        # RADIUS appliances use self-signed certificates
        return httpx.Client(timeout=self.timeout, verify=False)

    def call(self, endpoint: RadiusConfig, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = f"{endpoint.base_url}{path}"
        auth = (endpoint.username, decrypt_data(endpoint.password))

        with self._open() as client:
            for attempt in range(1, self.retries + 1):
                try:
                    response = client.request(method, url, json=payload, auth=auth)
                    if response.is_success:
                        return response.json() if response.content else {}
                    if response.is_client_error:
                        logger.info(f"[{method}] {url} -> HTTP {response.status_code}")
                        return False
                    logger.warning(f"[{method}] {url} -> HTTP {response.status_code} (attempt {attempt}/{self.retries})")
                except (httpx.HTTPError, ValueError) as e:
                    logger.warning(f"[{method}] {url} failed (attempt {attempt}/{self.retries}): {e}")

                if attempt < self.retries:
                    time.sleep(self.retry_delay)

        logger.error(f"[{method}] {url} gave up after {self.retries} attempts")
        return False


class RadiusOperationsService:
    def __init__(self, session: Session, client: Optional[RadiusClient] = None,
                 settings: Optional[Settings] = None):
        self.session = session
        settings = settings or get_settings()
        self.client = client or RadiusClient(
            timeout=settings.radius_timeout,
            retries=settings.radius_retries,
            retry_delay=settings.radius_retry_delay,
        )

    # --- Endpoints ---

    def get_endpoints(self) -> List[RadiusConfig]:
        return self.session.exec(select(RadiusConfig).order_by(RadiusConfig.id)).all()

    def _require_endpoints(self) -> List[RadiusConfig]:
        endpoints = self.get_endpoints()
        if not endpoints:
            raise RadiusOperationError("No RADIUS configuration found")
        return endpoints

    # --- Public operations ---

    def disconnect_user(self, username: str, account_no: str = "", remarks: str = "",
                        updated_by: str = "System") -> Dict[str, str]:
        logger.info(f"=== DISCONNECT account={account_no} user={username} remarks={remarks} by={updated_by}")
        try:
            if not username:
                raise RadiusOperationError("Username is required for disconnect operation")
            status = "Pullout" if remarks == "Pullout" else "Inactive"
            self._apply_group(self._require_endpoints(), username, RadiusGroup.DISCONNECTED.value,
                              status, True, account_no)
            logger.info(f"[SUCCESS] {username} disconnected")
            return self._result("success", "User disconnected successfully", "Success: User Disconnected")
        except (RadiusOperationError, httpx.HTTPError) as e:
            logger.error(f"[EXCEPTION] disconnect {username}: {e}")
            return self._result("error", str(e), f"Error: {e}")

    def reconnect_user(self, username: str, plan: str, account_no: str = "",
                       updated_by: str = "System") -> Dict[str, str]:
        logger.info(f"=== RECONNECT account={account_no} user={username} plan={plan} by={updated_by}")
        try:
            if not username:
                raise RadiusOperationError("Username is required for reconnect operation")
            if not plan or not plan.strip():
                raise RadiusOperationError("Plan is required for reconnect operation")
            group = clean_plan_group(plan)
            self._apply_group(self._require_endpoints(), username, group, "Active", False, account_no)
            logger.info(f"[SUCCESS] {username} reconnected on group {group}")
            return self._result("success", "User reconnected successfully", "Success: User Reconnected")
        except (RadiusOperationError, httpx.HTTPError) as e:
            logger.error(f"[EXCEPTION] reconnect {username}: {e}")
            return self._result("error", str(e), f"Error: {e}")

    def update_credentials(self, username: str, new_username: str, new_password: str,
                           account_no: str = "", updated_by: str = "System") -> Dict[str, str]:
        logger.info(f"=== UPDATE CREDENTIALS account={account_no} {username} -> {new_username} by={updated_by}")
        try:
            if not username:
                raise RadiusOperationError("Current username is required")
            if not new_username or not new_password:
                raise RadiusOperationError("New username and password are required")

            endpoints = self._require_endpoints()
            radius_id, _ = self._find_user(endpoints, username)
            if radius_id is None:
                raise RadiusOperationError(f"User '{username}' not found in RADIUS")

            patched = False
            for endpoint in endpoints:
                result = self.client.call(endpoint, "PATCH", f"{USER_PATH}/{radius_id}",
                                          {"name": new_username, "password": new_password})
                if result is not False:
                    patched = True
            if not patched:
                raise RadiusOperationError("Failed to update RADIUS credentials")

            self._kill_sessions(endpoints, username)
            self._store_username(account_no, username, new_username)
            return self._result("success", "Credentials updated successfully",
                                "Success: Credentials Updated (RADIUS updated, DB username updated)")
        except (RadiusOperationError, httpx.HTTPError) as e:
            logger.error(f"[EXCEPTION] update credentials {username}: {e}")
            return self._result("error", str(e), f"Error: {e}")

    # --- Internals ---

    @staticmethod
    def _result(status: str, message: str, output: str) -> Dict[str, str]:
        return {"status": status, "message": message, "output": output}

    def _find_user(self, endpoints: List[RadiusConfig], username: str):
        path = f"{USER_PATH}/{quote(username, safe='')}"
        for endpoint in endpoints:
            result = self.client.call(endpoint, "GET", path)
            if isinstance(result, dict) and result.get(".id"):
                logger.info(f"[FOUND] {username} id={result['.id']} group='{result.get('group', '')}'")
                return result[".id"], result.get("group", "")
        return None, None

    def _kill_sessions(self, endpoints: List[RadiusConfig], username: str) -> int:
        killed = 0
        for endpoint in endpoints:
            sessions = self.client.call(endpoint, "GET", f"{SESSION_PATH}?user={quote(username, safe='')}")
            if not isinstance(sessions, list):
                continue
            for active in sessions:
                session_id = active.get(".id") if isinstance(active, dict) else None
                if session_id and self.client.call(endpoint, "DELETE", f"{SESSION_PATH}/{session_id}") is not False:
                    killed += 1
        logger.info(f"[SESSIONS] killed {killed} session(s) for {username}")
        return killed

    def _apply_group(self, endpoints: List[RadiusConfig], username: str, target_group: str,
                     db_status: str, is_disconnect: bool, account_no: str) -> None:
        radius_id, current_group = self._find_user(endpoints, username)
        if radius_id is None:
            raise RadiusOperationError(f"User '{username}' not found in RADIUS")

        patched = False
        if current_group != target_group:
            logger.info(f"[PATCH] {username}: '{current_group}' -> '{target_group}'")
            for endpoint in endpoints:
                if self.client.call(endpoint, "PATCH", f"{USER_PATH}/{radius_id}", {"group": target_group}) is not False:
                    patched = True
            if not patched:
                raise RadiusOperationError(f"Failed to move '{username}' to group {target_group}")

        if is_disconnect or patched:
            self._kill_sessions(endpoints, username)
        else:
            logger.info(f"[DECISION] {username} already in {target_group}, keeping session")

        self._store_status(account_no, username, db_status)

    def _account_for(self, account_no: str, username: str) -> Optional[BillingAccount]:
        account = None
        if account_no:
            account = self.session.exec(
                select(BillingAccount).where(BillingAccount.account_no == account_no)
            ).first()
        if account is None and username:
            account = self.session.exec(
                select(BillingAccount).where(BillingAccount.pppoe_username == username)
            ).first()
        return account

    def _store_status(self, account_no: str, username: str, db_status: str) -> None:
        account = self._account_for(account_no, username)
        if account is None:
            logger.warning(f"[DB] no billing account for {account_no or username}, status not stored")
            return
        account.status = db_status
        account.updated_at = datetime.utcnow()
        self.session.add(account)
        self.session.commit()
        logger.info(f"[DB] {account.account_no} status -> {db_status}")

    def _store_username(self, account_no: str, old_username: str, new_username: str) -> None:
        account = self._account_for(account_no, old_username)
        if account is None:
            logger.warning("[DB] RADIUS updated, but no billing account matched")
            return
        account.pppoe_username = new_username
        account.updated_at = datetime.utcnow()
        technical = self.session.exec(
            select(TechnicalDetail).where(TechnicalDetail.account_no == account.account_no)
        ).first()
        if technical:
            technical.username = new_username
            technical.updated_at = datetime.utcnow()
            self.session.add(technical)
        self.session.add(account)
        self.session.commit()


def clean_plan_group(plan_name: str) -> str:
    """RADIUS group of a plan: the first word of its name ("FIBER1599 50Mbps" -> "FIBER1599")."""
    return plan_name.strip().split()[0]


class RadiusReconnectionService:
    """Reconnects an account automatically once its balance is settled."""

    def __init__(self, session: Session, operations: Optional[RadiusOperationsService] = None):
        self.session = session
        self.operations = operations or RadiusOperationsService(session)

    def attempt_reconnect(self, account_no: str, remarks: str = "Auto reconnect after payment") -> ReconnectResult:
        try:
            account = self.session.exec(
                select(BillingAccount).where(BillingAccount.account_no == account_no)
            ).first()
            if not account:
                return ReconnectResult.ACCOUNT_NOT_FOUND
            if account.account_balance > 0:
                return ReconnectResult.BALANCE_REMAINING

            technical = self.session.exec(
                select(TechnicalDetail).where(TechnicalDetail.account_no == account_no)
            ).first()
            username = (technical.username if technical else None) or account.pppoe_username
            if not username:
                return ReconnectResult.NO_USERNAME
            if not self.operations.get_endpoints():
                return ReconnectResult.NO_RADIUS_CONFIG

            plan = self.session.get(Plan, account.plan_id) if account.plan_id else None
            result = self.operations.reconnect_user(
                username, plan.plan_name if plan else "", account_no=account_no, updated_by="PaymentWorker"
            )
            if result["status"] != "success":
                logger.warning(f"[AUTO RECONNECT] {account_no} failed: {result['message']}")
                return ReconnectResult.FAILED

            account.billing_status_id = BillingStatus.ACTIVE
            account.updated_at = datetime.utcnow()
            self.session.add(account)
            self.session.add(
                ReconnectionLog(
                    account_id=account.id,
                    account_no=account_no,
                    username=username,
                    plan_id=account.plan_id,
                    remarks=remarks,
                )
            )
            self.session.commit()
            logger.info(f"[AUTO RECONNECT] {account_no} reconnected")
            return ReconnectResult.SUCCESS
        except Exception as e:
            self.session.rollback()
            logger.error(f"[AUTO RECONNECT] {account_no} error: {e}")
            return ReconnectResult.ERROR


class RadiusConfigService(BaseCRUDService[RadiusConfig]):
    """CRUD for RADIUS endpoints. Passwords are encrypted before they hit the DB."""

    order_by = "id"

    def __init__(self, session: Session):
        super().__init__(session, RadiusConfig)

    def create(self, data: Dict[str, Any]) -> RadiusConfig:
        if data.get("ssl_type") not in ("http", "https"):
            raise ValueError("ssl_type must be http or https.")
        return super().create({**data, "password": encrypt_data(data["password"])})

    def update(self, id: int, data: Dict[str, Any]) -> RadiusConfig:
        if "ssl_type" in data and data["ssl_type"] not in ("http", "https"):
            raise ValueError("ssl_type must be http or https.")
        if data.get("password"):
            data = {**data, "password": encrypt_data(data["password"])}
        else:
            data.pop("password", None)
        return super().update(id, data)
