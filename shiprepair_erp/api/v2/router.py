from fastapi import APIRouter
from shiprepair_erp.api.v2 import (
    work_orders,
    cost_lines,
    quotes,
    invoices,
    payments,
    profit_reports,
    service_items,
    users,
)

api_router = APIRouter()

# Include all v2 routers
api_router.include_router(work_orders.router, prefix="/work-orders", tags=["work-orders"])
api_router.include_router(service_items.router, tags=["service-items"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(cost_lines.router, tags=["cost-ledger"])
api_router.include_router(quotes.router, tags=["quotes"])
api_router.include_router(invoices.router, tags=["invoices"])
api_router.include_router(payments.router, tags=["payments"])
api_router.include_router(profit_reports.router, tags=["profit-reports"])
