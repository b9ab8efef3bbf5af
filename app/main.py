from contextlib import asynccontextmanager

from sqlalchemy import text

from app.core.observability import (
    http_exception_handler,
    request_logging_middleware,
    settlement_exception_handler,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import SettlementError
from app.db.session import engine
from app.routers import audit, commissions, marketplace_settings, orders, payouts, sellers
from app.tasks.payout_scheduler import PayoutScheduler

payout_scheduler = PayoutScheduler()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    payout_scheduler.start()
    try:
        yield
    finally:
        payout_scheduler.stop()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan,
    description=(
        "Settlement backend for a multi-vendor marketplace.\n\n"
        "Swagger quick test flow:\n"
        "1. Obtain an access token from the identity service.\n"
        "2. Click **Authorize** and paste the bearer token.\n"
        "3. Test protected endpoints (`/orders`, `/payouts`, `/commissions`, `/admin/...`)."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "sellers", "description": "Marketplace seller registration, commission rates, and verification."},
        {"name": "orders", "description": "Order lifecycle, settlement on payment, and per-seller splitting."},
        {"name": "payouts", "description": "Seller payout balances and payout requests."},
        {"name": "admin payouts", "description": "Payout review, approval, and the scheduled release."},
        {"name": "commissions", "description": "Commission history, summaries, and previews."},
        {"name": "marketplace settings", "description": "Default commission rate and payout schedule."},
        {"name": "audit", "description": "Audit trail endpoints for sensitive operations."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(SettlementError, settlement_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:3000"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if (
    not allow_origin_regex
    and env_value in {"dev", "development", "staging", "stage"}
):
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sellers.router)
app.include_router(sellers.me_router)
app.include_router(orders.router)
app.include_router(payouts.router)
app.include_router(payouts.admin_router)
app.include_router(commissions.router)
app.include_router(marketplace_settings.router)
app.include_router(audit.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        return {"ok": False}
    return {"ok": True}
