"""
Application factory and FastAPI app configuration.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from deal_service.api.router import router as api_router

# Setup logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("deal_service")

PROCESS_TIME_HEADER = "X-Process-Time"


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Deal Valuation API",
        version="0.1.0",
        description="REST API for acquisition valuation, sensitivity and roll-up models",
    )

    application.include_router(api_router)
    model_endpoints = sorted(route.path for route in api_router.routes)

    @application.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"Incoming request: {request.method} {request.url.path}")
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path} Error: {str(e)}")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error"},
            )

        process_time = time.time() - start_time
        response.headers[PROCESS_TIME_HEADER] = f"{process_time:.4f}"
        # Rejected deal inputs are worth seeing without DEBUG logging.
        level = logging.WARNING if 400 <= response.status_code < 500 else logging.INFO
        logger.log(
            level,
            f"Request completed: {request.method} {request.url.path} "
            f"Status: {response.status_code} Time: {process_time:.4f}s",
        )
        return response

    @application.get("/")
    def read_root():
        return {"message": "Deal Valuation API is running", "endpoints": model_endpoints}

    return application


# Module-level app instance for uvicorn
app = create_app()
