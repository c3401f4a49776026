'''
Application entry point: lifespan, CORS, routers and the error handlers
that turn engine failures into {"detail", "kind"} responses.
'''
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .database.engine import create_db_engine_and_session_factory, dispose_db_engine
from .common.exceptions import ErrorKind, StoreTimeoutError, SwapEngineError
from .common.logger import log
from .common.config import settings
from .api import auth, slots, swap_requests

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    create_db_engine_and_session_factory()

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    log.info("Application lifespan shutdown...")
    await dispose_db_engine()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    # URL of testing frontend
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

# --- Domain Error Mapping ---
ERROR_STATUS_CODES = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_OPERATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_RESOLVED: status.HTTP_409_CONFLICT,
    ErrorKind.TRANSACTION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

@app.exception_handler(SwapEngineError)
async def swap_engine_exception_handler(request: Request, exc: SwapEngineError) -> JSONResponse:
    """Turns a domain error into {"detail", "kind"} with a stable status code."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.details}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "kind": exc.kind.value},
    )

@app.exception_handler(StoreTimeoutError)
async def store_timeout_exception_handler(request: Request, exc: StoreTimeoutError) -> JSONResponse:
    log.error(f"{request.method} {request.url.path} timed out: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "The database did not answer in time, please retry.", "kind": "Timeout"},
    )

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(auth.router)
app.include_router(slots.router)
app.include_router(swap_requests.router)
