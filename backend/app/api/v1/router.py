from fastapi import APIRouter

from app.api.v1 import (
    entry_routes,
    health,
    ledger_routes,
    outturn_routes,
    rice_stock_routes,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(ledger_routes.router, prefix="/ledger", tags=["Paddy Ledger"])
api_router.include_router(rice_stock_routes.router, prefix="/rice-stock", tags=["Rice Stock"])
api_router.include_router(outturn_routes.router, prefix="/outturns", tags=["Outturns"])
api_router.include_router(entry_routes.router)
