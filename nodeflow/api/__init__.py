"""
API package - FastAPI routes and schemas.
"""

from nodeflow.api.routes import node_types, notifications, websocket, workflows

__all__ = ["node_types", "notifications", "websocket", "workflows"]
