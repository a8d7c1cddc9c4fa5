"""
FastAPI app assembly: logging, middleware and router wiring.
"""
import logging
import os
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from edulog.api.admin import router as admin_router
from edulog.api.appointments import router as appointments_router
from edulog.api.audits import router as audits_router
from edulog.api.notifications import router as notifications_router
from edulog.api.scheduling_notifications import router as scheduling_notifications_router
from edulog.security.middleware import RateLimitMiddleware, SanitizeJSONBodyMiddleware, WRITE_METHODS
from edulog.utils.runtime import dev_mode_active

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="AIedulog Service",
    description="Appointment scheduling notifications, security audit log and identity administration.",
    version="1.0.0",
)

app.router.redirect_slashes = False

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:8000",
    "https://aiedulog.com",
    "https://www.aiedulog.com",
]
extra_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# Later middleware wraps earlier middleware; the read-only guard below is outermost.
app.add_middleware(SanitizeJSONBodyMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins + extra_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Middleware: enforce read-only for unauthenticated requests
@app.middleware("http")
async def enforce_readonly_for_guests(request: Request, call_next):
    if request.method in WRITE_METHODS and not dev_mode_active():
        h = request.headers
        user_present = (
            h.get("x-auth-request-user")
            or h.get("x-auth-request-email")
            or h.get("x-forwarded-user")
            or h.get("x-forwarded-email")
        )
        if not user_present:
            return JSONResponse(
                {"detail": "Guest mode is read-only. Sign in to perform changes."},
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
    return await call_next(request)


app.include_router(scheduling_notifications_router, prefix="/notifications/scheduling")
app.include_router(notifications_router, prefix="/notifications")
app.include_router(appointments_router, prefix="/appointments")
app.include_router(admin_router, prefix="/admin")
app.include_router(audits_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "edulog-service"}
