"""
HTTP Request executor.

Issues the configured request with httpx and hands the parsed response to
downstream nodes. The response is always logged before the status check,
so a failing call still leaves its full reply in the node log.
"""

from typing import Any, Dict, List, Optional
import asyncio
import json
import logging
import time

import httpx

from nodeflow.config import settings
from nodeflow.engine.errors import NetworkError, RequestError, RequestTimeoutError, ValidationError
from nodeflow.engine.graph import Node, NodeType
from nodeflow.engine.state import ExecutionContext
from nodeflow.nodes.registry import NodeExecutor, register_executor, utc_timestamp


logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {"Content-Type": "application/json"}
BODY_METHODS = ("POST", "PUT", "PATCH")


def parse_headers(headers: Any) -> Dict[str, str]:
    """Headers may be configured as a dict or as JSON text; anything else is ignored."""
    if not headers:
        return {}
    if isinstance(headers, str):
        try:
            headers = json.loads(headers)
        except ValueError:
            return {}
    if isinstance(headers, dict):
        return {str(k): str(v) for k, v in headers.items()}
    return {}


def encode_body(body: Any) -> Optional[str]:
    if body is None or body == "":
        return None
    return body if isinstance(body, str) else json.dumps(body)


def parse_response_body(response: httpx.Response, logs: List[str]) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = response.json()
        except ValueError:
            logs.append("Failed to parse JSON, using text response")
            return response.text
        logs.append("Response parsed as JSON")
        return data
    logs.append("Response parsed as text")
    return response.text


@register_executor
class HttpRequestExecutor(NodeExecutor):
    """
    Executes `http-request` nodes.

    Config:
        url: Target URL (required)
        method: HTTP method, default GET
        headers: Extra headers merged over `Content-Type: application/json`
        body: Request body, sent only for POST, PUT and PATCH
        timeout: Seconds before the call is cancelled, default 30
    """

    node_type = NodeType.HTTP_REQUEST
    label = "HTTP Request"
    category = "action"
    description = "Make an HTTP request to an external API"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        config = node.config
        url = str(config.get("url") or "").strip()
        if not url:
            raise ValidationError("URL is required and cannot be empty")

        method = str(config.get("method") or "GET").upper()
        timeout = float(config.get("timeout") or settings.HTTP_REQUEST_TIMEOUT)
        headers = {**DEFAULT_HEADERS, **parse_headers(config.get("headers"))}
        body = encode_body(config.get("body")) if method in BODY_METHODS else None

        logs.append(f"Making {method} request to {url}")
        logs.append(f"Headers: {json.dumps(headers)}")
        if body is not None:
            logs.append(f"Body: {body}")

        start_time = time.time()
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=timeout) as client:
                response = await asyncio.wait_for(
                    client.request(method, url, headers=headers, content=body),
                    timeout=timeout,
                )
                data = parse_response_body(response, logs)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise RequestTimeoutError(timeout) from None
        except httpx.InvalidURL as e:
            raise ValidationError(f"Invalid URL: {e}") from None
        except httpx.TransportError as e:
            logger.info(f"HTTP node '{node.id}' could not reach {url}: {e}")
            raise NetworkError("Network error - check URL and internet connection") from None

        duration = int((time.time() - start_time) * 1000)
        logs.append(f"Request completed in {duration}ms with status {response.status_code}")

        result = {
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "headers": dict(response.headers),
            "data": data,
            "url": url,
            "method": method,
            "duration": duration,
            "timestamp": utc_timestamp(),
        }
        logs.append(f"Response: {json.dumps(result, indent=2, default=str)}")

        if not response.is_success:
            raise RequestError(response.status_code, response.reason_phrase)

        return result
