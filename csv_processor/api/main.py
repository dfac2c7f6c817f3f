# csv_processor/api/main.py
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
import logging
import uvicorn
from datetime import datetime

from csv_processor import __version__
from csv_processor.api.rate_limit import SlidingWindowRateLimiter
from csv_processor.api.schemas import ErrorResponse, HealthResponse, ProcessRequest, ProcessResponse
from csv_processor.config import Config, get_config
from csv_processor.engine.models import OperationRequest, result_type
from csv_processor.pipeline import CSVProcessingPipeline
from csv_processor.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

def client_identity(request: Request, trust_forwarded: bool = False) -> str:
    """Caller identity used for rate limiting.

    X-Forwarded-For is client-controlled, so it is only read when the app
    runs behind a proxy that sets it.
    """
    if trust_forwarded:
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if forwarded:
            return forwarded
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"

def create_app(pipeline: Optional[CSVProcessingPipeline] = None,
               rate_limiter: Optional[SlidingWindowRateLimiter] = None,
               config: Optional[Config] = None) -> FastAPI:
    """Build the HTTP adapter around a processing pipeline"""
    config = config or get_config()
    pipeline = pipeline or CSVProcessingPipeline()
    if rate_limiter is None and config.rate_limit.ENABLED:
        rate_limiter = SlidingWindowRateLimiter.from_config(config.rate_limit)

    app = FastAPI(
        title="CSV Processor API",
        description="Validation, cleaning and analysis of CSV data",
        version=__version__,
        docs_url="/docs" if config.deployment.ENABLE_DOCS else None,
        redoc_url="/redoc" if config.deployment.ENABLE_DOCS else None,
    )

    if config.deployment.ENABLE_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def enforce_rate_limit(request: Request) -> str:
        identity = client_identity(request, config.deployment.TRUST_PROXY_HEADERS)
        if rate_limiter is not None and not rate_limiter.check(identity):
            logger.warning(f"Rate limit exceeded for {identity}")
            raise HTTPException(status_code=429, detail="Too many requests. Please try again later.")
        return identity

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint"""
        return HealthResponse(status="healthy", timestamp=datetime.now().isoformat())

    @app.post("/csv/process", response_model=ProcessResponse, responses={429: {"model": ErrorResponse}})
    async def process_csv(body: ProcessRequest, identity: str = Depends(enforce_rate_limit)):
        """Run one operation over the supplied CSV data"""
        request = OperationRequest(**body.model_dump())
        logger.info(f"Processing {request.operation} for {identity}")

        result = await pipeline.arun(request)
        return ProcessResponse(result=result.to_wire(), result_type=result_type(result))

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "CSV Processor API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    app.state.pipeline = pipeline
    app.state.rate_limiter = rate_limiter
    return app

app = create_app()

def main():
    config = get_config()
    setup_logging(log_level=config.logging_level, log_dir=str(config.paths.LOGS_DIR), log_to_file=config.log_to_file)
    uvicorn.run(
        "csv_processor.api.main:app",
        host=config.deployment.DEFAULT_HOST,
        port=config.deployment.DEFAULT_PORT,
        workers=config.deployment.WORKERS,
        log_level=config.logging_level.lower()
    )

if __name__ == "__main__":
    main()
