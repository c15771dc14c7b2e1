from shiprepair_erp.models.user import User
from shiprepair_erp.models.work_order import WorkOrder, WorkOrderStatus
from shiprepair_erp.models.cost_line import CostLine, CostAttachment, CostCategory
from shiprepair_erp.models.service_item import (
    ServiceItem,
    ServiceItemStatus,
    ServiceItemEngineer,
    ServiceAttachment,
)
from shiprepair_erp.models.quote import Quote
from shiprepair_erp.models.invoice import Invoice, InvoiceStatus
from shiprepair_erp.models.payment import PaymentReceipt
from shiprepair_erp.models.profit_report import ProfitReport, ProfitReportStatus
from shiprepair_erp.models.audit_log import AuditLog
from shiprepair_erp.models.notification import Notification

__all__ = [
    "User",
    "WorkOrder",
    "WorkOrderStatus",
    "CostLine",
    "CostAttachment",
    "CostCategory",
    "ServiceItem",
    "ServiceItemStatus",
    "ServiceItemEngineer",
    "ServiceAttachment",
    "Quote",
    "Invoice",
    "InvoiceStatus",
    "PaymentReceipt",
    "ProfitReport",
    "ProfitReportStatus",
    "AuditLog",
    "Notification",
]
