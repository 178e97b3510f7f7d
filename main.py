import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voucher_engine.api.endpoints import admin, bookings, vouchers
from voucher_engine.core.database import Base, engine
from voucher_engine.core.settings import settings
from voucher_engine.models import booking as _booking_models  # noqa: F401
from voucher_engine.models import experience as _experience_models  # noqa: F401
from voucher_engine.models import voucher as _voucher_models  # noqa: F401
from voucher_engine.services.errors import InvariantViolation, TransientStoreError

logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Voucher & Booking Lifecycle Engine API")

# Configure CORS
origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def startup() -> None:
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)


@app.exception_handler(TransientStoreError)
async def transient_store_error_handler(request: Request, exc: TransientStoreError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "error_code": "TransientStoreError", "retryable": True},
        headers={"Retry-After": "1"},
    )


@app.exception_handler(InvariantViolation)
async def invariant_violation_handler(request: Request, exc: InvariantViolation) -> JSONResponse:
    logger.error("invariant_violation path=%s detail=%s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal data inconsistency", "error_code": "InvariantViolation", "retryable": False},
    )


# API Routes
app.include_router(vouchers.router, prefix="/api", tags=["vouchers"])
app.include_router(bookings.router, prefix="/api", tags=["bookings"])
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
