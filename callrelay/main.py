"""
CallRelay: FastAPI Application Entry Point

Thin HTTP surface over the dispatcher for callers that are not in-process
(e.g. the telephony webhook service):
- /health: Provider availability and uptime
- /providers: Provider registry and attempt orders
- /config: Non-sensitive configuration values
- /dispatch: Obtain a reply (text or tool calls) for one turn
- /dispatch/tool-results: Finish a turn after tools were executed

The caller remains responsible for executing tools and for the user-facing
fallback when every provider fails (HTTP 503).
"""

from contextlib import asynccontextmanager
import logging
import time

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from callrelay import __version__
from callrelay.config import Settings, configure_logging, get_settings
from callrelay.dispatcher.orchestrator import get_orchestrator
from callrelay.errors import AllProvidersFailedError
from callrelay.schemas.api import (
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    ProviderHealth,
    ToolResultsRequest,
)
from callrelay.schemas.conversation import DispatchRequest, DispatchResult

logger = logging.getLogger(__name__)

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On startup configures logging and reports which providers have API
    keys. A missing key is not fatal: that provider just fails over.
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("CallRelay starting up...")
    logger.info(f"Provider order: {', '.join(settings.provider_order)}")
    for provider in settings.provider_order:
        if settings.api_key_for(provider):
            logger.info(f"{provider}: configured ({settings.model_for(provider)})")
        else:
            logger.warning(f"{provider}: API key not set, provider will be skipped on failure")
    logger.info(
        f"Sampling: temperature={settings.temperature}, "
        f"max_output_tokens={settings.max_output_tokens}"
    )

    get_orchestrator()

    global _start_time
    _start_time = time.time()

    logger.info("CallRelay ready to accept requests")

    yield

    logger.info("CallRelay shutting down...")


app = FastAPI(
    title="CallRelay",
    description="Resilient multi-provider conversational dispatch",
    version=__version__,
    lifespan=lifespan,
)


def _all_failed_response(exc: AllProvidersFailedError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(
            error=ErrorDetail(
                code=ErrorCodes.ALL_PROVIDERS_FAILED,
                message=str(exc),
                attempts=[
                    {"provider": a.provider, "outcome": a.outcome, "error": a.error}
                    for a in exc.attempts
                ],
            )
        ).model_dump(exclude_none=True),
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check with provider status.

    "healthy" when the primary provider is available, "degraded" when only
    fallbacks are, "unhealthy" when no provider can currently be attempted.
    """
    orchestrator = get_orchestrator()
    providers = {
        name: ProviderHealth(**info)
        for name, info in orchestrator.get_provider_status().items()
    }

    available = [name for name, info in providers.items() if info.status == "available"]
    order = orchestrator.registry.default_order()
    if not available:
        overall_status = "unhealthy"
    elif order and order[0] in available:
        overall_status = "healthy"
    else:
        overall_status = "degraded"

    uptime = time.time() - _start_time if _start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        version=__version__,
        providers=providers,
        uptime_seconds=uptime,
    )


@app.get("/providers")
async def list_providers():
    """List registered providers with their metadata and attempt orders."""
    registry = get_orchestrator().registry
    return {
        "providers": [
            {
                "name": p.name.value,
                "display_name": p.display_name,
                "api_model_name": p.api_model_name,
                "system_prompt_placement": p.system_prompt_placement.value,
                "temperature": p.temperature,
                "max_output_tokens": p.max_output_tokens,
                "configured": p.configured,
            }
            for p in registry.list_providers()
        ],
        "dispatch_order": registry.default_order(),
        "reconciliation_orders": {
            name: registry.reconciliation_order(name) for name in registry.default_order()
        },
    }


@app.get("/config")
async def show_config(settings: Settings = Depends(get_settings)):
    """
    Returns non-sensitive configuration values.

    API keys are SecretStr and are NOT exposed in this endpoint.
    """
    return {
        "providers": {
            "order": settings.provider_order,
            "models": {name: settings.model_for(name) for name in settings.provider_order},
        },
        "sampling": {
            "temperature": settings.temperature,
            "max_output_tokens": settings.max_output_tokens,
        },
        "cooldowns": {
            "rate_limit_seconds": settings.rate_limit_cooldown_seconds,
            "error_seconds": settings.error_cooldown_seconds,
        },
        "logging": {"level": settings.log_level},
        "api_keys_configured": {
            name: settings.api_key_for(name) is not None for name in settings.provider_order
        },
    }


@app.post(
    "/dispatch",
    response_model=DispatchResult,
    responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def dispatch_turn(request: DispatchRequest):
    """
    Obtain a reply for one conversational turn.

    The result carries either text or tool calls. After executing the tool
    calls, post their results to /dispatch/tool-results.
    """
    try:
        return await get_orchestrator().dispatch(request)
    except AllProvidersFailedError as e:
        return _all_failed_response(e)


@app.post(
    "/dispatch/tool-results",
    response_model=DispatchResult,
    responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def dispatch_tool_results(body: ToolResultsRequest):
    """Send tool results back to finish the turn with a text reply."""
    try:
        return await get_orchestrator().reconcile(
            body.provider,
            body.request,
            body.tool_results,
            tool_calls=body.tool_calls or None,
        )
    except AllProvidersFailedError as e:
        return _all_failed_response(e)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return the first validation error in the standard error format."""
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": detail})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": str(detail)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected exceptions and return a generic error."""
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            }
        },
    )
