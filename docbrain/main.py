# docbrain/main.py
import os
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docbrain.api.routes import RETRY_MESSAGE, router
from docbrain.observability.logger import get_logger, setup_logging
from docbrain.observability.metrics import metrics_tracker
from docbrain.observability.posthog_client import posthog_client

# Initialize logging FIRST
setup_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="DocBrain API",
    description="Document Q&A over uploaded PDFs with relevance-filtered prompts",
    version="1.0.0"
)

# CORS middleware (handles OPTIONS preflight)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Assign a request id, log start/completion and record latency metrics.
    """

    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    logger.info(
        "request_started",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None
        }
    )

    start_time = time.time()

    try:

        response = await call_next(request)

    except Exception as e:

        metrics_tracker.record_failure()

        logger.error(
            "request_failed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "latency_seconds": round(time.time() - start_time, 3),
                "error": str(e),
                "error_type": type(e).__name__
            },
            exc_info=True
        )

        raise

    latency = time.time() - start_time

    if response.status_code >= 500:
        metrics_tracker.record_failure()
    else:
        metrics_tracker.record_success(latency)

    logger.info(
        "request_completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_seconds": round(latency, 3)
        }
    )

    response.headers["X-Request-ID"] = request_id

    return response


app.include_router(router)


@app.on_event("startup")
async def startup_event():

    logger.info("application_startup", extra={"version": "1.0.0"})

    if not os.getenv("OPENAI_API_KEY") and not os.getenv("GEMINI_API_KEY"):

        logger.warning(
            "missing_api_key",
            extra={
                "warning_detail":
                "Neither OPENAI_API_KEY nor GEMINI_API_KEY is set. "
                "Model calls will return the fallback analysis."
            }
        )


@app.on_event("shutdown")
async def shutdown_event():

    logger.info("application_shutdown")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):

    errors = "; ".join(error.get("msg", "") for error in exc.errors())

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": f"Invalid request: {errors}"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):

    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__
        },
        exc_info=True
    )

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        endpoint=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "An internal error occurred.",
            "analysis": RETRY_MESSAGE,
            "request_id": request_id,
        }
    )


@app.get("/")
async def root():

    return {
        "message": "DocBrain API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
