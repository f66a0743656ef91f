"""
Payment Ledger: FastAPI Application.

This is the entry point for the application.
Logging, error handlers and routers are set up here.
"""

import logging
import sys

from fastapi import FastAPI

from payment_ledger.config import get_settings
from payment_ledger.api.errors import register_error_handlers
from payment_ledger.api.health import router as health_router
from payment_ledger.api.history import router as history_router
from payment_ledger.api.payments import router as payments_router
from payment_ledger.services.locks import AccountLockManager

settings = get_settings()

logging.basicConfig(
    stream=sys.stdout,
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Balances, peer-to-peer payments and ledger history",
)

# One lock registry per process, shared by every request
app.state.lock_manager = AccountLockManager()

register_error_handlers(app)

# Register routers
app.include_router(health_router)
app.include_router(payments_router)
app.include_router(history_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "payment_ledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
