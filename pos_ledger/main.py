"""
POS Ledger: FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

from fastapi import FastAPI

from pos_ledger.config import get_settings
from pos_ledger.api.health import router as health_router
from pos_ledger.api.ledger import router as ledger_router
from pos_ledger.api.cash import router as cash_router
from pos_ledger.api.reports import router as reports_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry accounting core for a point-of-sale back office",
)

# Register routers
app.include_router(health_router)
app.include_router(ledger_router)
app.include_router(cash_router)
app.include_router(reports_router)
