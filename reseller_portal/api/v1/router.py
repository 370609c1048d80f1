from fastapi import APIRouter

from reseller_portal.api.v1.endpoints import (
    admin,
    auto_approval_rules,
    commissions,
    customers,
    notifications,
    reports,
    users,
)

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(customers.router, prefix="/customers", tags=["Customers"])
api_router.include_router(commissions.router, prefix="/commissions", tags=["Commissions"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(
    auto_approval_rules.router,
    prefix="/admin/auto-approval-rules",
    tags=["Auto-approval rules"]
)
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
