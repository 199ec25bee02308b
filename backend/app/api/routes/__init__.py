"""
API Routes
Progetto: Gestionale Studio Legale

Router aggregato sotto il prefisso /api.
"""

from fastapi import APIRouter

from app.api.routes import (
    alerts,
    auth,
    billing,
    calendar,
    cases,
    crm,
    documents,
    finance,
    settings,
)

# Router aggregato
api_router = APIRouter(prefix="/api")

# Includi i router dei moduli
api_router.include_router(auth.router)
api_router.include_router(crm.router)
api_router.include_router(cases.router)
api_router.include_router(cases.tasks_router)
api_router.include_router(cases.deadlines_router)
api_router.include_router(billing.router)
api_router.include_router(finance.router)
api_router.include_router(documents.router)
api_router.include_router(alerts.router)
api_router.include_router(calendar.router)
api_router.include_router(settings.router)

# Esportazione
__all__ = ["api_router"]
