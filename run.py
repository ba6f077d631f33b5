#!/usr/bin/env python3
"""
Simple run script for the Nodeflow server.

Usage:
    python run.py

Or with custom settings:
    HOST=127.0.0.1 PORT=8080 python run.py
"""

import uvicorn

from nodeflow.config import settings


def main():
    """Run the FastAPI application."""
    host = settings.HOST
    port = settings.PORT

    print(f"""
  Nodeflow v{settings.APP_VERSION}

  Server:    http://{host}:{port}
  API Docs:  http://{host}:{port}/docs
  Email:     {'configured' if settings.email_configured else 'not configured'}
  Demo workflow ID: order-alert-demo
    """)

    uvicorn.run(
        "nodeflow.main:app",
        host=host,
        port=port,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
