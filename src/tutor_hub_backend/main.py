'''
Application entry point: lifespan, middleware, exception handlers and routers.
'''
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .database.engine import create_db_engine_and_session_factory, dispose_db_engine
from .common.cache import create_cache, close_cache
from .common.exceptions import ExternalServiceError, WizardValidationError
from .common.logger import log
from .common.config import settings
from .api import (
    auth, profiles, subjects, children, courses, sessions, assessments,
    notifications, billing, support, dashboard, admin, quran, cloudflare,
    homework, materials
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    create_db_engine_and_session_factory()
    create_cache()

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    await close_cache()
    if not settings.TEST_MODE:
        log.info("Application lifespan shutdown...")
        await dispose_db_engine()
    else:
        log.info("Skipping database engine disposal in TEST_MODE.")


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    # URL of local frontends
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)
# --- End of CORS Middleware ---

# --- Exception Handlers ---
@app.exception_handler(ExternalServiceError)
async def external_service_error_handler(request: Request, exc: ExternalServiceError):
    log.error(f"Upstream failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})

@app.exception_handler(WizardValidationError)
async def wizard_validation_error_handler(request: Request, exc: WizardValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation failed.", "step": exc.step, "errors": exc.errors},
    )

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(auth.router)
app.include_router(profiles.router)
app.include_router(subjects.router)
app.include_router(children.router)
app.include_router(courses.router)
app.include_router(sessions.router)
app.include_router(assessments.router)
app.include_router(homework.router)
app.include_router(materials.router)
app.include_router(notifications.router)
app.include_router(billing.router)
app.include_router(support.router)
app.include_router(dashboard.router)
app.include_router(admin.admin_users_router)
app.include_router(admin.admin_profiles_router)
app.include_router(quran.router)
app.include_router(cloudflare.router)
