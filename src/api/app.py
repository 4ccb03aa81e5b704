"""
HTTP API for SubTrack

FastAPI application exposing the orchestrator over JSON.

Every response uses the same envelope:
    {"success": bool, "data"?: ..., "error"?: str, "message"?: str}

Error mapping:
- NormalizationError / bad request body -> 400
- NotFoundError -> 404
- StorageError and anything unexpected -> 500 "Internal server error"
  (logged, details never leave the server)
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, FastAPI, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from src import __version__
from src.models.subscription import ParseFailure
from src.orchestrator import PARSE_FAILED_MESSAGE, AppComponents, create_app_components
from src.services.storage import NotFoundError, StorageError
from src.validation import SubscriptionValidationError

logger = structlog.get_logger("subtrack.api")

INVALID_DATE_MESSAGE = "Invalid date. Must be between 1-31"
INVALID_INPUT_MESSAGE = "Invalid input"
NOT_FOUND_MESSAGE = "Subscription not found"


# =============================================================================
# ENVELOPE
# =============================================================================

def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def ok(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = _jsonable(data)
    if message is not None:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def fail(error: str, status_code: int, details: Optional[list] = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


# =============================================================================
# ROUTES
# =============================================================================

router = APIRouter()


@router.get("/subscriptions")
async def list_subscriptions(
    q: Optional[str] = Query(default=None, description="Text filter on name or category"),
    components: AppComponents = Depends(get_components),
):
    return ok(await components.subscriptions.list_all(q))


@router.post("/subscriptions")
async def create_subscription(
    payload: dict[str, Any] = Body(...),
    components: AppComponents = Depends(get_components),
):
    sub = await components.subscriptions.create(payload)
    return ok(sub, status_code=201)


@router.get("/subscriptions/date/{date}")
async def list_by_date(
    date: str,
    components: AppComponents = Depends(get_components),
):
    try:
        day = int(date)
    except ValueError:
        return fail(INVALID_DATE_MESSAGE, 400)
    if not 1 <= day <= 31:
        return fail(INVALID_DATE_MESSAGE, 400)
    return ok(await components.subscriptions.list_by_day(day))


@router.get("/subscriptions/{subscription_id}")
async def get_subscription(
    subscription_id: str,
    components: AppComponents = Depends(get_components),
):
    return ok(await components.subscriptions.get(subscription_id))


@router.put("/subscriptions/{subscription_id}")
async def update_subscription(
    subscription_id: str,
    payload: dict[str, Any] = Body(...),
    components: AppComponents = Depends(get_components),
):
    return ok(await components.subscriptions.update(subscription_id, payload))


@router.delete("/subscriptions/{subscription_id}")
async def delete_subscription(
    subscription_id: str,
    components: AppComponents = Depends(get_components),
):
    await components.subscriptions.delete(subscription_id)
    return ok(message="Subscription deleted successfully")


@router.get("/stats/monthly-total")
async def monthly_total(components: AppComponents = Depends(get_components)):
    return ok({"total": float(await components.subscriptions.monthly_total())})


@router.get("/stats/categories")
async def category_stats(
    q: Optional[str] = Query(default=None),
    components: AppComponents = Depends(get_components),
):
    return ok(await components.subscriptions.category_stats(q))


@router.get("/calendar/{year}/{month}")
async def month_view(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    q: Optional[str] = Query(default=None),
    day: Optional[int] = Query(default=None, ge=1, le=31),
    category: Optional[str] = Query(default=None),
    components: AppComponents = Depends(get_components),
):
    view = await components.subscriptions.month_view(
        year,
        month,
        query=q,
        selected_day=day,
        selected_category=category,
    )
    return ok(view)


@router.get("/ai/insights")
async def insights(components: AppComponents = Depends(get_components)):
    subscriptions = await components.subscriptions.list_all()
    return ok(await components.insights.generate(subscriptions))


@router.post("/ai/parse-smart-add")
async def parse_smart_add(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    text = payload.get("input") if isinstance(payload, dict) else None
    if not isinstance(text, str) or not text.strip():
        return fail(INVALID_INPUT_MESSAGE, 400)

    result = await components.smart_add.parse(text)
    if isinstance(result, ParseFailure):
        return fail(PARSE_FAILED_MESSAGE, 400)
    return ok(result)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def _validation_error(request: Request, exc: SubscriptionValidationError):
    return fail(str(exc), 400, details=exc.to_dicts())


async def _request_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err["loc"]), "type": err["type"], "message": err["msg"]}
        for err in exc.errors()
    ]
    return fail("Invalid request", 400, details=details)


async def _not_found(request: Request, exc: NotFoundError):
    return fail(NOT_FOUND_MESSAGE, 404)


async def _storage_error(request: Request, exc: StorageError):
    logger.error("storage_error", path=request.url.path, error=str(exc))
    return fail("Internal server error", 500)


async def _http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return fail("Route not found", 404)
    return fail(str(exc.detail), exc.status_code)


async def _unexpected_error(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    await get_components(request).audit_logger.log_error(
        error_type=type(exc).__name__,
        error_message=str(exc),
        details={"path": request.url.path},
    )
    return fail("Internal server error", 500)


# =============================================================================
# FACTORY
# =============================================================================

def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        components: Pre-built components (tests); defaults to
            create_app_components() from the environment
    """
    components = components or create_app_components()
    settings = components.settings

    app = FastAPI(title="SubTrack API", version=__version__)
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.api.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix=settings.api.prefix)

    @app.get("/health")
    async def health():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "ai_enabled": components.insights.ai_enabled,
        }

    app.add_exception_handler(SubscriptionValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(StorageError, _storage_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected_error)

    logger.info(
        "api_created",
        prefix=settings.api.prefix,
        storage=type(components.subscriptions.storage).__name__,
        ai_enabled=components.insights.ai_enabled,
    )
    return app
