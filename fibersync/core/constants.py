"""
Centralized constants for the system.
Removes magic strings for statuses shared by services and routers.
"""

from enum import Enum, IntEnum, unique


@unique
class BillingStatus(IntEnum):
    """Values of billing_accounts.billing_status_id."""

    ACTIVE = 1
    PENDING = 2
    INACTIVE = 3
    DISCONNECTED = 4
    PULLOUT = 5


BILLING_STATUS_NAMES = {
    BillingStatus.ACTIVE: "Active",
    BillingStatus.PENDING: "Pending",
    BillingStatus.INACTIVE: "Inactive",
    BillingStatus.DISCONNECTED: "Disconnected",
    BillingStatus.PULLOUT: "Pullout",
}


@unique
class PaymentStatus(str, Enum):
    """Lifecycle of a pending_payments row."""

    PENDING = "PENDING"
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    API_RETRY = "API_RETRY"


# Xendit callback status -> internal status. Unknown values are ignored.
XENDIT_STATUS_MAP = {
    "PAID": PaymentStatus.QUEUED,
    "COMPLETED": PaymentStatus.QUEUED,
    "SETTLED": PaymentStatus.QUEUED,
    "PAYMENT_SUCCESS": PaymentStatus.QUEUED,
    "EXPIRED": PaymentStatus.EXPIRED,
    "FAILED": PaymentStatus.FAILED,
    "PAYMENT_FAILED": PaymentStatus.FAILED,
}

XENDIT_PAID_STATUSES = ("PAID", "SETTLED", "COMPLETED", "PAYMENT_SUCCESS")


@unique
class LifecycleResult(str, Enum):
    """Outcome of a service-order triggered network operation."""

    SUCCESS = "success"
    FAILED = "failed"
    EXCEPTION = "exception"
    NO_USERNAME = "no_username"
    NO_PLAN = "no_plan"


@unique
class LifecycleAction(str, Enum):
    RECONNECTION = "reconnection"
    DISCONNECTION = "disconnection"
    PULLOUT = "pullout"
    MIGRATION = "migration"


@unique
class ReconnectResult(str, Enum):
    """Outcome of an automatic reconnect after a payment."""

    ACCOUNT_NOT_FOUND = "account_not_found"
    BALANCE_REMAINING = "balance_remaining"
    NO_USERNAME = "no_username"
    NO_RADIUS_CONFIG = "no_radius_config"
    SUCCESS = "success"
    FAILED = "failed"
    ERROR = "error"


@unique
class RadiusGroup(str, Enum):
    DISCONNECTED = "Disconnected"


@unique
class EmailStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@unique
class InventoryMovement(str, Enum):
    IN = "IN"
    OUT = "OUT"


REPAIR_CATEGORIES = [
    "Fiber Relaying",
    "Migrate",
    "Others",
    "Pullout",
    "Reboot/Reconfig Router",
    "Relocate Router",
    "Relocate",
    "Replace Patch Cord",
    "Replace Router",
    "Resplice",
    "Transfer LCP/NAP/PORT",
    "Update Vlan",
]

SUPPORT_STATUS_RESOLVED = "Resolved"
VISIT_STATUS_DONE = "Done"

OPEN_INVOICE_STATUSES = ("Unpaid", "Partial")
CLOSED_SUPPORT_STATUSES = ("Closed", "Cancelled")
SYSTEM_USER = "System"
