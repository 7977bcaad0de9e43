"""
Request Parser module - Parse security monitor requests
"""

import json

from pydantic import ValidationError
from sanic import Request

from exceptions import RequestParseError
from models import RequestDescriptor


class RequestParser:
    """Parse incoming security monitor requests"""

    def parse_descriptor(self, request: Request) -> RequestDescriptor:
        """Parse the JSON request descriptor from the request body"""
        try:
            payload = json.loads(request.body.decode("utf-8") if request.body else "")
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RequestParseError(f"Request body is not valid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise RequestParseError("Request body must be a JSON object")

        # The forwarded url and method default to this request's own
        payload.setdefault("url", request.url)
        payload.setdefault("method", request.method)

        try:
            return RequestDescriptor.model_validate(payload)
        except ValidationError as exc:
            raise RequestParseError(f"Invalid request descriptor: {exc}") from exc

    def extract_user_agent(self, request: Request, descriptor: RequestDescriptor) -> str:
        """User agent from the descriptor, then the request, then 'unknown'"""
        return descriptor.header("user-agent") or request.headers.get("user-agent") or "unknown"

    def extract_client_ip(self, request: Request) -> str:
        """Extract client IP from forwarding headers"""
        # Try X-Forwarded-For first
        if forwarded := request.headers.get("X-Forwarded-For"):
            if ip := forwarded.split(",")[0].strip():
                return ip

        # Try X-Real-IP
        if ip := request.headers.get("X-Real-IP"):
            return ip

        return "unknown"
