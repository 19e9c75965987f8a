"""
Issue Intake - Main Application
================================

Turns free-form bug/request submissions (text, screenshots, recordings)
into routed Linear issues.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Pipeline services and DTOs
- Domain: Entities, routing rules, prompt building
- Infrastructure: OpenAI, Linear, S3, Secrets Manager
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from issue_intake.config import settings
from issue_intake.core import ApplicationException, ConfigurationException

# Infrastructure
from issue_intake.infrastructure.llm import MockLLMClient, OpenAILLMClient
from issue_intake.infrastructure.secrets import Credentials, SecretsProvider
from issue_intake.infrastructure.storage import S3StorageAdapter
from issue_intake.infrastructure.tracker import LinearClient

# Triage Module
from issue_intake.triage.infrastructure import (
    LLMClientAdapter,
    LinearTrackerAdapter,
    RoutingRulesManager,
    S3AttachmentStore,
    create_triage_pipeline,
)
from issue_intake.triage.interfaces import triage_router

# Logging, metrics and HTTP plumbing
from issue_intake.shared.infrastructure.logging import setup_logging, get_logger
from issue_intake.shared.infrastructure.grafana import init_grafana_exporter
from issue_intake.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    validation_exception_handler,
    global_exception_handler,
)

logger = get_logger(__name__)


def _build_llm_client(credentials: Credentials):
    if settings.mock_llm:
        logger.info("Using mock LLM client")
        return MockLLMClient()
    return OpenAILLMClient(credentials.model_api_key)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load routing rules and watch the rules file
    3. Resolve credentials (Secrets Manager, then env)
    4. Initialize Grafana exporter
    5. Wire the triage pipeline

    SHUTDOWN:
    1. Stop the rules watcher
    2. Close the Linear client
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Issue Intake", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    rules_manager = RoutingRulesManager()
    rules_manager.load(settings.routing_rules_path)
    rules_manager.start_watching()

    credentials = await asyncio.to_thread(SecretsProvider().get_credentials)

    if settings.grafana_host and settings.grafana_api_key and settings.grafana_instance_id:
        init_grafana_exporter(
            host=settings.grafana_host,
            api_key=settings.grafana_api_key,
            instance_id=settings.grafana_instance_id
        )
        logger.info("Grafana OTLP exporter initialized")
    else:
        logger.info("Grafana OTLP exporter not configured - metrics will not be exported")

    tracker = None
    pipeline = None
    try:
        llm = LLMClientAdapter(_build_llm_client(credentials))
        tracker = LinearTrackerAdapter(LinearClient(credentials.tracker_api_key))
        store = S3AttachmentStore(S3StorageAdapter())
        pipeline = create_triage_pipeline(llm, tracker, store, lambda: rules_manager.router)
    except ConfigurationException as e:
        logger.warning("Triage pipeline not available", extra={"error": e.message})

    app.state.credentials = credentials
    app.state.rules_manager = rules_manager
    app.state.tracker = tracker
    app.state.triage_pipeline = pipeline

    logger.info("Issue Intake started", extra={"pipeline_ready": pipeline is not None})

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Issue Intake")
    rules_manager.stop_watching()
    if tracker is not None:
        await tracker.close()
    logger.info("Issue Intake shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Issue Intake API",
    description="""
    ## Submission triage for Linear

    `POST /triage/submit` accepts a reporter name, free-text details and any
    number of files. The service uploads the files, transcribes audio/video,
    drafts an issue with the model, routes it by keyword rules and either
    creates a Linear issue or comments on an existing one with the same title.

    `GET /triage/routing/preview` shows which team and assignee a piece of
    text routes to.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (last added runs first) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(triage_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "model_credentials": "present",
                        "tracker_credentials": "present",
                        "triage_pipeline": "ready",
                        "routing_rules": "25 rules"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports credential presence, pipeline wiring and the routing table size.
    """
    credentials = getattr(request.app.state, "credentials", None)
    rules_manager = getattr(request.app.state, "rules_manager", None)
    pipeline = getattr(request.app.state, "triage_pipeline", None)

    checks = {
        "model_credentials": "present" if credentials and credentials.model_api_key else "missing",
        "tracker_credentials": "present" if credentials and credentials.tracker_api_key else "missing",
        "triage_pipeline": "ready" if pipeline else "not_configured",
        "routing_rules": f"{len(rules_manager.config.rules)} rules" if rules_manager else "built-in"
    }

    return {
        "status": "healthy" if pipeline else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Issue Intake",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "submit": "/triage/submit"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "issue_intake.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
