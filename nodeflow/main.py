"""
Nodeflow - FastAPI Application Entry Point.

A node-based workflow engine: triggers, HTTP calls, notifications, delays
and conditional branches wired together as a directed graph.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from nodeflow.config import settings
from nodeflow.api.routes import node_types, notifications, websocket, workflows
from nodeflow.storage.memory import workflow_storage, run_storage
from nodeflow.workflows.order_alert import DEMO_WORKFLOW_ID, register_order_alert_workflow


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Email configuration: {'configured' if settings.email_configured else 'not configured'}")

    await register_order_alert_workflow()

    yield

    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## Workflow Engine API

Run node-based workflows built in a visual editor.

### Features
- **Triggers**: Manual and webhook entry points
- **Actions**: HTTP requests, email through the notification service, simulated SMS, delays
- **Branching**: Condition nodes with AND/OR logic over 17 operators
- **Real-time Updates**: WebSocket streaming of every node status change

### Quick Start
1. List node types: `GET /node-types`
2. Store a workflow: `POST /workflows`
3. Run it: `POST /workflows/{workflow_id}/run`
4. Check the run: `GET /runs/{run_id}`

### Demo Workflow
A pre-registered Order Alert workflow is available with ID: `order-alert-demo`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(workflows.router)
app.include_router(node_types.router)
app.include_router(notifications.router)
app.include_router(websocket.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "A node-based workflow engine",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "workflows": "/workflows",
            "runs": "/runs",
            "node_types": "/node-types",
            "notifications": "/api/send-email",
            "websocket_run": "/ws/run/{workflow_id}",
        },
        "demo_workflow": DEMO_WORKFLOW_ID,
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "workflows_count": len(workflow_storage),
        "runs_count": len(run_storage),
        "email_configured": settings.email_configured,
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )
