import logging

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from lastmove import __version__
from lastmove.db.base import get_db
from lastmove.core.config import settings
from lastmove.routers import notifications as notifications_router
from lastmove.routers import subscriptions as subscriptions_router
from lastmove.core.errors import (
    LastMoveException,
    lastmove_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LastMove Notification API",
    description=(
        "**Urgency-driven reminders for recurring activities**\n\n"
        "Computes how overdue each activity is relative to its period, creates "
        "push notifications at regular check times and delivers them via Web Push.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(LastMoveException, lastmove_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(notifications_router.router)
app.include_router(subscriptions_router.router)

if not settings.vapid_configured:
    logger.warning("VAPID keys not configured; push delivery will be refused")


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        logger.exception("Health check: database unreachable")
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
