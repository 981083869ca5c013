"""API Routes."""

from fastapi import APIRouter

from .admin import router as admin_router
from .analytics import router as analytics_router
from .auth import router as auth_router
from .clients import router as clients_router
from .contact import router as contact_router
from .demo import router as demo_router
from .health import router as health_router
from .invoices import router as invoices_router
from .payments import router as payments_router
from .portal import router as portal_router
from .subscriptions import router as subscriptions_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(auth_router)
api_router.include_router(demo_router)
api_router.include_router(clients_router)
api_router.include_router(subscriptions_router)
api_router.include_router(invoices_router)
api_router.include_router(payments_router)
api_router.include_router(admin_router)
api_router.include_router(portal_router)
api_router.include_router(contact_router)
api_router.include_router(analytics_router)
