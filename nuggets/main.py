import json
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from nuggets.core.db import init_db
from nuggets.core.logging import setup_logging
from nuggets.core.settings import get_settings
from nuggets.routers import router as api_router

# Initialize
settings = get_settings()
logger = setup_logging()

# Create app
app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Article media normalization and tag resolution",
)


def _serialize_validation_errors(errors: list) -> list:
    """Convert validation errors to JSON-serializable format."""
    serialized = []
    for error in errors:
        serialized_error = {
            "loc": error.get("loc"),
            "msg": str(error.get("msg", "")),
            "type": error.get("type"),
        }
        # Only include input if it's JSON-serializable
        if "input" in error:
            try:
                json.dumps(error["input"])
                serialized_error["input"] = error["input"]
            except (TypeError, ValueError):
                serialized_error["input"] = str(error["input"])
        serialized.append(serialized_error)
    return serialized


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log the rejected payload before returning the standard 422 body."""
    try:
        body_text = (await request.body()).decode("utf-8")
    except (RuntimeError, UnicodeDecodeError) as e:
        body_text = f"<unable to read body: {e}>"

    errors = _serialize_validation_errors(exc.errors())
    logger.error(
        "Validation error on %s %s",
        request.method,
        request.url.path,
        extra={
            "operation": "request_validation",
            "context_data": {"errors": errors, "body": body_text[:2000]},
        },
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


# Request logging middleware with timing
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start_time) * 1000
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    if duration_ms < 500:
        logger.info(f"<<< {request.method} {request.url.path} - {response.status_code} [{duration_ms:.2f}ms]")
    else:
        logger.warning(
            f"<<< {request.method} {request.url.path} - {response.status_code} "
            f"[{duration_ms:.2f}ms] (very slow)"
        )
    return response


app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    logger.info("Starting up...")
    init_db()


# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.app_name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
