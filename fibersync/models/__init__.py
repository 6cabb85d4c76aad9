from .billing_account import BillingAccount, BillingStatusType, TechnicalDetail
from .customer import Customer
from .inventory import InventoryCategory, InventoryItem, InventoryLog
from .invoice import Installment, InstallmentSchedule, Invoice, Transaction
from .job_order import JobOrder
from .location import Barangay, City, Region, Village
from .network import Lcp, LcpNapLocation, Nap, Port, Vlan
from .notification import EmailQueue, EmailTemplate, SmsBlastLog, SmsConfig, SmsTemplate
from .payment import PendingPayment, WorkerLock
from .plan import Plan
from .pppoe import PppoeUsernamePattern
from .radius import DisconnectionLog, OnlineStatus, RadiusConfig, ReconnectionLog
from .service_order import ServiceOrder
from .setting import Setting
from .user import User
