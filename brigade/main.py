import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .errors import BrigadeError, StorageError
from .migration_runner import run_migrations_once
from .responses import failure, success
from .routers import auth, recipes, schedules, users

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
async def ensure_schema() -> None:
    if not settings.run_migrations_on_startup:
        return
    try:
        run_migrations_once()
    except Exception:  # pragma: no cover
        logger.exception("Database migration failed")
        raise


@app.exception_handler(BrigadeError)
async def handle_domain_error(request: Request, exc: BrigadeError):
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s", request.method, request.url.path)
    return failure(exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return failure("Invalid request", 400)
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return failure(message, 400)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return failure(message, exc.status_code)


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return failure("Internal server error", 500)


@app.get("/health")
async def health():
    return success({"status": "ok", "environment": settings.environment})


app.include_router(auth.router)
app.include_router(recipes.router)
app.include_router(schedules.router)
app.include_router(users.router)
