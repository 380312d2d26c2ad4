from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from contextlib import asynccontextmanager
import structlog

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from talenthr.config import settings
from talenthr.database import init_db, close_db, get_db
from talenthr.errors import ApiError, InternalError
from talenthr.logging_config import setup_logging
from talenthr.middleware.correlation import CorrelationIdMiddleware
from talenthr.services.email_service import close_http_client

# Import models so they are registered with Base.metadata
import talenthr.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_talenthr", env=settings.ENVIRONMENT)
    await init_db()
    yield
    await close_http_client()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers: every error leaves as
# {"success": false, "message": "..."} with the matching status code.
# ---------------------------------------------------------------------------

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("api_error", code=exc.code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


def _validation_message(error: dict) -> str:
    msg = error.get("msg", "Invalid request")
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    return f"{'.'.join(loc)}: {msg}" if loc else msg


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = _validation_message(errors[0]) if errors else "Validation failed"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    error = InternalError(str(exc) or None)
    return JSONResponse(status_code=error.status_code, content=error.to_content())


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except Exception as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from talenthr.routes.auth import router as auth_router  # noqa: E402
from talenthr.routes.otp import router as otp_router  # noqa: E402
from talenthr.routes.invitations import router as invitations_router  # noqa: E402
from talenthr.routes.users import router as users_router  # noqa: E402
from talenthr.routes.departments import router as departments_router  # noqa: E402
from talenthr.routes.employees import router as employees_router  # noqa: E402
from talenthr.routes.jobs import router as jobs_router  # noqa: E402
from talenthr.routes.candidates import router as candidates_router  # noqa: E402
from talenthr.routes.interviews import router as interviews_router  # noqa: E402

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(otp_router, prefix="/api/otp", tags=["OTP"])
app.include_router(invitations_router, prefix="/api/invitations", tags=["Invitations"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(departments_router, prefix="/api/departments", tags=["Departments"])
app.include_router(employees_router, prefix="/api/employees", tags=["Employees"])
app.include_router(jobs_router, prefix="/api/jobs", tags=["Jobs"])
app.include_router(candidates_router, prefix="/api/candidates", tags=["Candidates"])
app.include_router(interviews_router, prefix="/api/interviews", tags=["Interviews"])
