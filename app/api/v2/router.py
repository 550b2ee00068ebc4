from fastapi import APIRouter
from app.api.v2 import (
    auth,
    users,
    services,
    workflows,
    quotes,
    invoices,
    reservations,
    workshop,
    audit_logs,
)

api_router = APIRouter()

# Include all v2 routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(services.router, prefix="/services", tags=["services"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(quotes.router, prefix="/quotes", tags=["quotes"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(reservations.router, prefix="/reservations", tags=["reservations"])
api_router.include_router(workshop.router, prefix="/workshop", tags=["workshop"])
api_router.include_router(audit_logs.router, tags=["audit-logs"])
