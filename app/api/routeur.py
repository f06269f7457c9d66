from __future__ import annotations

from fastapi import APIRouter

from app.api.endpoints.stock import routeur_stock_interne
from app.api.endpoints.tickets_cuisine import routeur_tickets_cuisine_interne


# ==============================
# ROUTEUR PRINCIPAL
# ==============================
router = APIRouter()


# ==============================
# API INTERNE
# ==============================
routeur_interne = APIRouter(prefix="/api/interne")

routeur_interne.include_router(routeur_tickets_cuisine_interne)
routeur_interne.include_router(routeur_stock_interne)

router.include_router(routeur_interne)
