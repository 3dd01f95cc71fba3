import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import engine, Base, SessionLocal
from .dependencies import get_identity_verifier
from .errors import EntitlementError
from .routers import auth, calculators, payments
from .sessions import purge_expired_sessions

logger = logging.getLogger("mjengo")

logging.basicConfig(
    level=logging.DEBUG if settings.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create tables
Base.metadata.create_all(bind=engine)

SWEEP_INTERVAL_SECONDS = 5 * 60

app = FastAPI(
    title="Mjengo Construction Calculator",
    description="Construction cost calculators with email-verified access and metered free use",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(auth.router, prefix="/api")
app.include_router(calculators.router, prefix="/api")
app.include_router(payments.router, prefix="/api")
app.include_router(payments.webhook_router)


@app.exception_handler(EntitlementError)
async def entitlement_error_handler(request: Request, exc: EntitlementError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"error": "InternalError", "message": "Something went wrong. Please try again later."}
    if settings.is_development:
        content["detail"] = repr(exc)
    return JSONResponse(status_code=500, content=content)


@app.get("/health")
def health():
    return {"status": "ok", "app": "mjengo"}


@app.get("/payment-success")
def payment_success():
    """Paystack redirects here after checkout. Entitlements arrive via the webhook."""
    return {
        "success": True,
        "message": "Your payment has been processed successfully. "
                   "You can now access all the construction calculators.",
    }


def _sweep_once() -> None:
    get_identity_verifier().store.sweep()
    db = SessionLocal()
    try:
        purged = purge_expired_sessions(db)
        if purged:
            logger.info("Purged %d expired sessions", purged)
    finally:
        db.close()


async def _sweep_forever():
    # Memory reclamation only; lookups already evict lazily
    while True:
        await asyncio.sleep(SWEEP_INTERVAL_SECONDS)
        try:
            await run_in_threadpool(_sweep_once)
        except Exception:
            logger.exception("Periodic sweep failed")


@app.on_event("startup")
async def start_sweeper():
    """Start the periodic challenge/session sweep."""
    app.state.sweeper = asyncio.create_task(_sweep_forever())


@app.on_event("shutdown")
async def stop_sweeper():
    sweeper = getattr(app.state, "sweeper", None)
    if sweeper:
        sweeper.cancel()
