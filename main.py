from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import structlog
import time
from testgen.api.errors import error_response
from testgen.api.routes import api_router
from testgen.config.settings import settings
from testgen.core.database import SessionLocal, create_tables
from testgen.core.dependencies import container
from testgen.core.exceptions import PipelineError
from testgen.repositories.implementations.sql_generation_history_repository import SQLGenerationHistoryRepository

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""

    app = FastAPI(
        title="Test Case Generation API",
        description="Generates test cases from Jira tickets and their pull requests with a local language model",
        version="1.0.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc"
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None
        )

        response = await call_next(request)

        process_time = time.time() - start_time

        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time=process_time
        )

        return response

    @app.exception_handler(PipelineError)
    async def pipeline_exception_handler(request: Request, exc: PipelineError):
        logger.warning(
            "Request failed",
            method=request.method,
            url=str(request.url),
            code=exc.code,
            status_code=exc.status_code,
            error=exc.message,
        )
        return error_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            method=request.method,
            url=str(request.url),
            error=str(exc),
            exc_info=True
        )
        return error_response(exc, status_code=500)

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


# Create the application instance
app = create_app()


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Application starting up", environment=settings.environment)

    try:
        create_tables()
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    db = SessionLocal()
    try:
        await SQLGenerationHistoryRepository(db).purge_expired()
    except PipelineError as e:
        logger.error("Generation history retention purge failed", error=e.message)
    finally:
        db.close()

    logger.info(
        "Application startup completed",
        ollama_url=settings.ollama_base_url,
        coder_model=settings.ollama_coder_model,
        reasoning_model=settings.ollama_reasoning_model,
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    container.shutdown()
    logger.info("Application shutting down")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
