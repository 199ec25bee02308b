"""
API Routes
Progetto: Gestionale Studio Legale

Modulo per l'aggregazione dei router.
"""

from app.api.routes import api_router

# Esportazione router
__all__ = ["api_router"]
